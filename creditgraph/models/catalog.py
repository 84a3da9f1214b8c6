"""Data transfer objects returned by catalog providers.

These are the provider-neutral shapes the matching and merge services work
on.  Providers map their raw payloads (musicbrainzngs dicts, discogs_client
objects, Last.fm JSON) into these models and nothing upstream of the
providers ever sees a raw payload.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Artists
# ---------------------------------------------------------------------------

class ArtistRef(BaseModel):
    """A catalog artist: identifier plus display name."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    disambiguation: str = ""
    score: int = 0


class ArtistCredit(BaseModel):
    """One entry in a recording's artist credit list.

    ``joinphrase`` is the text printed after this artist ("feat. ", " & ");
    a featuring phrase marks the *next* credit as a featured artist.
    """

    model_config = ConfigDict(frozen=True)

    artist: ArtistRef
    credited_name: str = ""
    joinphrase: str = ""


class ArtistRelation(BaseModel):
    """A typed artist relation on a recording, work or artist.

    ``type`` is the catalog's relation type ("producer", "instrument",
    "composer", "member of band"); ``attributes`` refines it ("trumpet",
    "executive", "background").
    """

    model_config = ConfigDict(frozen=True)

    type: str
    artist: ArtistRef
    attributes: tuple[str, ...] = ()
    direction: str = "backward"


# ---------------------------------------------------------------------------
# Releases
# ---------------------------------------------------------------------------

class ReleaseRef(BaseModel):
    """A release as associated with a recording or returned by release search."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    status: str | None = None
    date: str | None = None
    primary_type: str | None = None
    secondary_types: tuple[str, ...] = ()
    release_group_id: str | None = None


class ReleaseCandidate(ReleaseRef):
    """A release search hit, carrying the upstream relevance score."""

    score: int = 0
    artist_credits: tuple[ArtistCredit, ...] = ()


class ReleaseTrack(BaseModel):
    """One track on a release's medium."""

    model_config = ConfigDict(frozen=True)

    recording_id: str
    title: str
    position: str = ""
    artist_credits: tuple[ArtistCredit, ...] = ()


class LabelRef(BaseModel):
    """A record label attached to a release."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    catalog_number: str | None = None


class ReleaseDetail(BaseModel):
    """Full release: its tracks across all media, and its labels."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    status: str | None = None
    date: str | None = None
    primary_type: str | None = None
    secondary_types: tuple[str, ...] = ()
    tracks: tuple[ReleaseTrack, ...] = ()
    labels: tuple[LabelRef, ...] = ()

    def as_ref(self) -> ReleaseRef:
        return ReleaseRef(
            id=self.id,
            title=self.title,
            status=self.status,
            date=self.date,
            primary_type=self.primary_type,
            secondary_types=self.secondary_types,
        )


class ReleaseGroupRef(BaseModel):
    """A release group (all editions of one album/single/EP)."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    primary_type: str | None = None
    secondary_types: tuple[str, ...] = ()
    first_release_date: str | None = None


# ---------------------------------------------------------------------------
# Recordings
# ---------------------------------------------------------------------------

class RecordingCandidate(BaseModel):
    """A recording search hit.

    ``score`` is the catalog's own relevance score (0-100 for MusicBrainz);
    the matcher adds its adjustments on top of it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    score: int = 0
    disambiguation: str = ""
    artist_credits: tuple[ArtistCredit, ...] = ()
    releases: tuple[ReleaseRef, ...] = ()


class RecordingDetail(BaseModel):
    """Everything the track graph needs about one recording."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    disambiguation: str = ""
    artist_credits: tuple[ArtistCredit, ...] = ()
    relations: tuple[ArtistRelation, ...] = ()
    work_ids: tuple[str, ...] = ()
    releases: tuple[ReleaseRef, ...] = ()


# ---------------------------------------------------------------------------
# Supplemental credits (Discogs)
# ---------------------------------------------------------------------------

class SupplementalCredit(BaseModel):
    """A free-text credit from the credits database.

    ``tracks`` is the raw position scope ("A2", "1, 3", "B1 to B3"); empty
    means the credit applies to the whole release.
    """

    model_config = ConfigDict(frozen=True)

    artist_id: str
    name: str
    role: str
    tracks: str = ""


class SupplementalTrack(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: str
    title: str
    credits: tuple[SupplementalCredit, ...] = ()


class SupplementalRelease(BaseModel):
    """A credits-database release with track-level and release-level credits."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    tracklist: tuple[SupplementalTrack, ...] = ()
    credits: tuple[SupplementalCredit, ...] = ()


# ---------------------------------------------------------------------------
# Scrobbles
# ---------------------------------------------------------------------------

class NowPlaying(BaseModel):
    """A user's current (or most recent) scrobbled track."""

    model_config = ConfigDict(frozen=True)

    track: str
    artist: str
    album: str = ""
    image: str | None = None
    is_playing: bool = False
    timestamp: int | None = Field(default=None, description="Unix time of the scrobble")
