"""MusicBrainz provider implementing ICatalogProvider.

Uses the musicbrainzngs library against the MusicBrainz web service.  The
library is synchronous, so every call runs in a worker thread via
``asyncio.to_thread`` after passing this provider's :class:`RateLimiter`.
MusicBrainz asks clients to stay at or under one request per second and
to identify themselves with a user-agent string.

Error mapping:
    - HTTP 404                  -> ``None`` / empty result
    - HTTP 503 or 429           -> ``RateLimitError`` (retried once)
    - any other WebServiceError -> ``TransientError``
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import musicbrainzngs
import structlog

from creditgraph.config.settings import Settings
from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.models.catalog import (
    ArtistCredit,
    ArtistRef,
    ArtistRelation,
    LabelRef,
    RecordingCandidate,
    RecordingDetail,
    ReleaseCandidate,
    ReleaseDetail,
    ReleaseGroupRef,
    ReleaseRef,
    ReleaseTrack,
)
from creditgraph.utils.errors import RateLimitError, TransientError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.rate_limiter import RateLimiter, retry_on_rate_limit

logger: structlog.BoundLogger = get_logger(__name__)

_SEARCH_LIMIT = 25
_ARTIST_SEARCH_LIMIT = 10
_BROWSE_LIMIT = 100


def _lucene_phrase(field: str, value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'{field}:"{escaped}"'


def _http_status(exc: musicbrainzngs.WebServiceError) -> int | None:
    cause = getattr(exc, "cause", None)
    return getattr(cause, "code", None)


# ---------------------------------------------------------------------------
# Payload mapping
# ---------------------------------------------------------------------------

def _map_artist(raw: dict[str, Any]) -> ArtistRef:
    return ArtistRef(
        id=raw["id"],
        name=raw.get("name", ""),
        disambiguation=raw.get("disambiguation", ""),
        score=int(raw.get("ext:score", 0) or 0),
    )


def _map_artist_credits(raw: list[Any] | None) -> tuple[ArtistCredit, ...]:
    """musicbrainzngs interleaves join phrases as plain strings between credits."""
    credits: list[ArtistCredit] = []
    for item in raw or []:
        if isinstance(item, str):
            if credits:
                credits[-1] = credits[-1].model_copy(
                    update={"joinphrase": credits[-1].joinphrase + item}
                )
            continue
        artist = item.get("artist")
        if not artist:
            continue
        credits.append(
            ArtistCredit(
                artist=_map_artist(artist),
                credited_name=item.get("name", artist.get("name", "")),
                joinphrase=item.get("joinphrase", ""),
            )
        )
    return tuple(credits)


def _map_release(raw: dict[str, Any]) -> ReleaseRef:
    group = raw.get("release-group") or {}
    return ReleaseRef(
        id=raw["id"],
        title=raw.get("title", ""),
        status=raw.get("status"),
        date=raw.get("date") or None,
        primary_type=group.get("primary-type") or group.get("type"),
        secondary_types=tuple(group.get("secondary-type-list", [])),
        release_group_id=group.get("id"),
    )


def _map_relation(raw: dict[str, Any]) -> ArtistRelation | None:
    artist = raw.get("artist")
    if not artist:
        return None
    return ArtistRelation(
        type=raw.get("type", ""),
        artist=_map_artist(artist),
        attributes=tuple(raw.get("attribute-list", [])),
        direction=raw.get("direction", "backward"),
    )


def _map_relations(raw: list[dict[str, Any]] | None) -> tuple[ArtistRelation, ...]:
    mapped = (_map_relation(item) for item in raw or [])
    return tuple(rel for rel in mapped if rel is not None)


class MusicBrainzProvider(ICatalogProvider):
    """MusicBrainz catalog provider with a shared per-source rate limiter.

    Attributes
    ----------
    _limiter : RateLimiter
        Gate every outbound call passes, including alias and work lookups
        triggered by the services.
    _backoff : float
        Fixed wait before the single retry after a 429/503.
    """

    def __init__(self, settings: Settings, limiter: RateLimiter | None = None) -> None:
        self._settings = settings
        self._limiter = limiter or RateLimiter(settings.musicbrainz_min_interval, name="musicbrainz")
        self._backoff = settings.rate_limit_backoff_seconds

        musicbrainzngs.set_useragent(
            settings.musicbrainz_app_name,
            settings.musicbrainz_app_version,
            settings.musicbrainz_contact or None,
        )
        logger.info(
            "musicbrainz_provider_initialized",
            app_name=settings.musicbrainz_app_name,
            app_version=settings.musicbrainz_app_version,
        )

    # ------------------------------------------------------------------
    # Request helper
    # ------------------------------------------------------------------

    async def _call(self, func: Callable[..., dict], *args: Any, **kwargs: Any) -> dict | None:
        """Throttle, run *func* in a thread and translate errors.

        Returns ``None`` on HTTP 404.
        """

        async def attempt() -> dict | None:
            await self._limiter.throttle()
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except musicbrainzngs.ResponseError as exc:
                status = _http_status(exc)
                if status == 404:
                    return None
                if status in (429, 503):
                    raise RateLimitError(
                        message=f"MusicBrainz throttled {func.__name__}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                raise TransientError(
                    message=f"MusicBrainz {func.__name__} failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            except musicbrainzngs.WebServiceError as exc:
                raise TransientError(
                    message=f"MusicBrainz {func.__name__} failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        return await retry_on_rate_limit(attempt, self._backoff, self.get_provider_name())

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_artist(self, name: str) -> list[ArtistRef]:
        """Search MusicBrainz for artists matching *name*."""
        response = await self._call(
            musicbrainzngs.search_artists,
            query=_lucene_phrase("artist", name),
            limit=_ARTIST_SEARCH_LIMIT,
        )
        results = [_map_artist(raw) for raw in (response or {}).get("artist-list", [])]
        logger.debug("musicbrainz_artist_search", query=name, result_count=len(results))
        return results

    async def search_recording(
        self,
        title: str,
        artist: str | None = None,
        album: str | None = None,
    ) -> list[RecordingCandidate]:
        clauses = [_lucene_phrase("recording", title)]
        if artist:
            clauses.append(_lucene_phrase("artist", artist))
        if album:
            clauses.append(_lucene_phrase("release", album))

        response = await self._call(
            musicbrainzngs.search_recordings,
            query=" AND ".join(clauses),
            limit=_SEARCH_LIMIT,
        )
        results: list[RecordingCandidate] = []
        for raw in (response or {}).get("recording-list", []):
            results.append(
                RecordingCandidate(
                    id=raw["id"],
                    title=raw.get("title", ""),
                    score=int(raw.get("ext:score", 0) or 0),
                    disambiguation=raw.get("disambiguation", ""),
                    artist_credits=_map_artist_credits(raw.get("artist-credit")),
                    releases=tuple(_map_release(r) for r in raw.get("release-list", [])),
                )
            )
        logger.debug(
            "musicbrainz_recording_search",
            title=title,
            artist=artist,
            album=album,
            result_count=len(results),
        )
        return results

    async def search_release(self, album: str, artist: str) -> list[ReleaseCandidate]:
        query = f"{_lucene_phrase('release', album)} AND {_lucene_phrase('artist', artist)}"
        response = await self._call(
            musicbrainzngs.search_releases, query=query, limit=_SEARCH_LIMIT
        )
        results: list[ReleaseCandidate] = []
        for raw in (response or {}).get("release-list", []):
            ref = _map_release(raw)
            results.append(
                ReleaseCandidate(
                    **ref.model_dump(),
                    score=int(raw.get("ext:score", 0) or 0),
                    artist_credits=_map_artist_credits(raw.get("artist-credit")),
                )
            )
        logger.debug("musicbrainz_release_search", album=album, result_count=len(results))
        return results

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def fetch_recording_detail(self, recording_id: str) -> RecordingDetail | None:
        response = await self._call(
            musicbrainzngs.get_recording_by_id,
            recording_id,
            includes=["artists", "artist-rels", "work-rels"],
        )
        if not response or "recording" not in response:
            return None
        recording = response["recording"]

        # Recording lookups cannot include release groups, so the release
        # list (with its types) comes from a browse call.
        browse = await self._call(
            musicbrainzngs.browse_releases,
            recording=recording_id,
            includes=["release-groups"],
            limit=_BROWSE_LIMIT,
        )
        releases = tuple(_map_release(r) for r in (browse or {}).get("release-list", []))

        work_ids = tuple(
            rel["work"]["id"]
            for rel in recording.get("work-relation-list", [])
            if rel.get("work", {}).get("id")
        )
        return RecordingDetail(
            id=recording["id"],
            title=recording.get("title", ""),
            disambiguation=recording.get("disambiguation", ""),
            artist_credits=_map_artist_credits(recording.get("artist-credit")),
            relations=_map_relations(recording.get("artist-relation-list")),
            work_ids=work_ids,
            releases=releases,
        )

    async def fetch_release_detail(self, release_id: str) -> ReleaseDetail | None:
        response = await self._call(
            musicbrainzngs.get_release_by_id,
            release_id,
            includes=["recordings", "labels", "release-groups", "artist-credits"],
        )
        if not response or "release" not in response:
            return None
        raw = response["release"]
        ref = _map_release(raw)

        tracks: list[ReleaseTrack] = []
        for medium in raw.get("medium-list", []):
            for track in medium.get("track-list", []):
                recording = track.get("recording") or {}
                if not recording.get("id"):
                    continue
                tracks.append(
                    ReleaseTrack(
                        recording_id=recording["id"],
                        title=track.get("title") or recording.get("title", ""),
                        position=track.get("number") or str(track.get("position", "")),
                        artist_credits=_map_artist_credits(
                            track.get("artist-credit") or recording.get("artist-credit")
                        ),
                    )
                )

        labels: list[LabelRef] = []
        for info in raw.get("label-info-list", []):
            label = info.get("label") or {}
            if not label.get("id"):
                continue
            labels.append(
                LabelRef(
                    id=label["id"],
                    name=label.get("name", ""),
                    catalog_number=info.get("catalog-number"),
                )
            )

        return ReleaseDetail(
            id=ref.id,
            title=ref.title,
            status=ref.status,
            date=ref.date,
            primary_type=ref.primary_type,
            secondary_types=ref.secondary_types,
            tracks=tuple(tracks),
            labels=tuple(labels),
        )

    async def fetch_artist_aliases(self, artist_id: str) -> list[str]:
        response = await self._call(
            musicbrainzngs.get_artist_by_id, artist_id, includes=["aliases"]
        )
        if not response:
            return []
        artist = response.get("artist", {})
        names = [alias.get("alias", "") for alias in artist.get("alias-list", [])]
        return [name for name in names if name]

    async def fetch_work_credits(self, work_id: str) -> list[ArtistRelation]:
        response = await self._call(
            musicbrainzngs.get_work_by_id, work_id, includes=["artist-rels"]
        )
        if not response:
            return []
        return list(_map_relations(response.get("work", {}).get("artist-relation-list")))

    async def fetch_artist_release_groups(self, artist_id: str) -> list[ReleaseGroupRef]:
        """Browse every release group credited to *artist_id*, paginating."""
        groups: list[ReleaseGroupRef] = []
        offset = 0
        while True:
            response = await self._call(
                musicbrainzngs.browse_release_groups,
                artist=artist_id,
                limit=_BROWSE_LIMIT,
                offset=offset,
            )
            page = (response or {}).get("release-group-list", [])
            if not page:
                break
            for raw in page:
                groups.append(
                    ReleaseGroupRef(
                        id=raw["id"],
                        title=raw.get("title", ""),
                        primary_type=raw.get("primary-type") or raw.get("type"),
                        secondary_types=tuple(raw.get("secondary-type-list", [])),
                        first_release_date=raw.get("first-release-date") or None,
                    )
                )
            total = int((response or {}).get("release-group-count", 0))
            offset += _BROWSE_LIMIT
            if offset >= total:
                break

        logger.debug("musicbrainz_release_groups", artist_id=artist_id, count=len(groups))
        return groups

    async def fetch_release_group_tracks(self, release_group_id: str) -> list[ReleaseTrack]:
        """Tracks of the earliest dated release in the group."""
        response = await self._call(
            musicbrainzngs.browse_releases,
            release_group=release_group_id,
            limit=_BROWSE_LIMIT,
        )
        releases = [_map_release(r) for r in (response or {}).get("release-list", [])]
        if not releases:
            return []
        earliest = sorted(releases, key=lambda r: (r.date is None, r.date or ""))[0]
        detail = await self.fetch_release_detail(earliest.id)
        return list(detail.tracks) if detail else []

    async def fetch_artist_relations(self, artist_id: str) -> list[ArtistRelation]:
        response = await self._call(
            musicbrainzngs.get_artist_by_id, artist_id, includes=["artist-rels"]
        )
        if not response:
            return []
        return list(_map_relations(response.get("artist", {}).get("artist-relation-list")))

    # ------------------------------------------------------------------

    def get_provider_name(self) -> str:
        """Return the provider identifier."""
        return "musicbrainz"

    def is_available(self) -> bool:
        """MusicBrainz is always available (no API key required)."""
        return True
