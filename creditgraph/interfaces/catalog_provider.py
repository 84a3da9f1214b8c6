"""Abstract base class for the primary recording/release catalog.

The primary catalog (MusicBrainz) is the source of identity: recording,
release, release-group and artist ids in the graph come from it.  Every
method must pass through the implementation's rate limiter, including the
alias and work lookups that services trigger indirectly.

Error contract:
    - Nothing found -> empty list or ``None`` (never an exception).
    - Upstream 429 after the single retry -> ``RateLimitError``.
    - Network failure / 5xx -> ``TransientError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from creditgraph.models.catalog import (
    ArtistRef,
    ArtistRelation,
    RecordingCandidate,
    RecordingDetail,
    ReleaseCandidate,
    ReleaseDetail,
    ReleaseGroupRef,
    ReleaseTrack,
)


class ICatalogProvider(ABC):
    """Contract for the primary catalog adapter."""

    @abstractmethod
    async def search_artist(self, name: str) -> list[ArtistRef]:
        """Search for artists by name, best match first.

        Parameters
        ----------
        name:
            Free-text artist name.
        """

    @abstractmethod
    async def search_recording(
        self,
        title: str,
        artist: str | None = None,
        album: str | None = None,
    ) -> list[RecordingCandidate]:
        """Search recordings, optionally constrained by artist and album.

        Parameters
        ----------
        title:
            Track title as given by the caller (already cleaned).
        artist:
            Optional artist name constraint.
        album:
            Optional release title constraint.

        Returns
        -------
        list[RecordingCandidate]
            Candidates in upstream order, each with its relevance score,
            disambiguation and associated releases.
        """

    @abstractmethod
    async def search_release(self, album: str, artist: str) -> list[ReleaseCandidate]:
        """Search releases by album title and artist name."""

    @abstractmethod
    async def fetch_recording_detail(self, recording_id: str) -> RecordingDetail | None:
        """Fetch credits, artist relations, work ids and releases of a recording.

        Returns ``None`` when the recording does not exist.
        """

    @abstractmethod
    async def fetch_release_detail(self, release_id: str) -> ReleaseDetail | None:
        """Fetch a release's track list (all media, in order) and its labels."""

    @abstractmethod
    async def fetch_artist_aliases(self, artist_id: str) -> list[str]:
        """Return every alias name recorded for an artist (legal names included)."""

    @abstractmethod
    async def fetch_work_credits(self, work_id: str) -> list[ArtistRelation]:
        """Return the composer / lyricist / writer / arranger relations of a work."""

    @abstractmethod
    async def fetch_artist_release_groups(self, artist_id: str) -> list[ReleaseGroupRef]:
        """Return an artist's release groups (albums, singles, EPs, other)."""

    @abstractmethod
    async def fetch_release_group_tracks(self, release_group_id: str) -> list[ReleaseTrack]:
        """Return the tracks of the earliest release in a release group."""

    @abstractmethod
    async def fetch_artist_relations(self, artist_id: str) -> list[ArtistRelation]:
        """Return artist-to-artist relations (band membership, collaborations)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in ids, logs and errors."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when the provider is configured for use."""
