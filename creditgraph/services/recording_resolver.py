"""Ordered lookup strategies that turn (track, artist, album?) into a recording.

Strategies are tried in order until one returns a found result:

1. ``release_first``  -- only when an album is named.  Search releases,
   rank them, open the top few and scan their track lists for the title.
   A hit here carries full production credits far more often than a bare
   recording search result.
2. ``recording_search`` -- recording search constrained by artist (and
   album when given), retrying with the raw title if the cleaned one finds
   nothing.
3. ``recording_search_without_album`` -- only when an album is named; the
   same search without the album constraint.

Catalog errors from the primary source propagate: failing to identify the
recording is the one failure a track request cannot recover from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.models.catalog import ReleaseDetail
from creditgraph.models.lookup import LookupResult
from creditgraph.services.recording_matcher import RecordingMatcher
from creditgraph.utils.errors import CreditGraphError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import clean_track_name, normalize

logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedRecording:
    """The recording a request resolved to, and how it was found."""

    recording_id: str
    title: str
    strategy: str
    release_id: str | None = None
    release: ReleaseDetail | None = None


_Strategy = Callable[[str, str, "str | None"], Awaitable[LookupResult[ResolvedRecording]]]


class RecordingResolver:
    """Runs the lookup strategies against one primary catalog."""

    def __init__(self, catalog: ICatalogProvider, matcher: RecordingMatcher) -> None:
        self._catalog = catalog
        self._matcher = matcher

    async def resolve(
        self,
        track: str,
        artist: str,
        album: str | None = None,
    ) -> LookupResult[ResolvedRecording]:
        """Return the first strategy hit, or not-found when every strategy misses."""
        strategies: list[tuple[str, _Strategy]] = []
        if album:
            strategies.append(("release_first", self._release_first))
        strategies.append(("recording_search", self._recording_search))
        if album:
            strategies.append(("recording_search_without_album", self._recording_search_without_album))

        for name, strategy in strategies:
            result = await strategy(track, artist, album)
            if result.is_found:
                logger.info(
                    "recording_resolved",
                    track=track,
                    artist=artist,
                    strategy=name,
                    recording_id=result.value.recording_id,
                )
                return result
            logger.debug("recording_strategy_missed", strategy=name, track=track)

        logger.info("recording_not_found", track=track, artist=artist, album=album)
        return LookupResult.not_found(source=self._catalog.get_provider_name())

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _release_first(
        self, track: str, artist: str, album: str | None
    ) -> LookupResult[ResolvedRecording]:
        if not album:
            return LookupResult.not_found(source="release_first")
        candidates = await self._catalog.search_release(album, artist)
        if not candidates:
            return LookupResult.not_found(source="release_first")

        ranked = self._matcher.release_matcher.rank_releases(candidates, album)
        limit = self._matcher.release_matcher.weights.release_first_candidates
        wanted = {normalize(track), normalize(clean_track_name(track))}

        for scored in ranked[:limit]:
            release_id = scored.candidate.id
            try:
                detail = await self._catalog.fetch_release_detail(release_id)
            except CreditGraphError as exc:
                logger.warning("release_detail_failed", release_id=release_id, error=str(exc))
                continue
            if detail is None:
                continue

            for release_track in detail.tracks:
                if normalize(release_track.title) in wanted:
                    logger.info(
                        "release_first_match",
                        release=detail.title,
                        release_score=scored.score,
                        position=release_track.position,
                    )
                    return LookupResult.found(
                        ResolvedRecording(
                            recording_id=release_track.recording_id,
                            title=release_track.title,
                            strategy="release_first",
                            release_id=detail.id,
                            release=detail,
                        ),
                        source="release_first",
                    )
        return LookupResult.not_found(source="release_first")

    async def _recording_search(
        self, track: str, artist: str, album: str | None
    ) -> LookupResult[ResolvedRecording]:
        return await self._search(track, artist, album, strategy="recording_search")

    async def _recording_search_without_album(
        self, track: str, artist: str, album: str | None
    ) -> LookupResult[ResolvedRecording]:
        return await self._search(track, artist, None, strategy="recording_search_without_album")

    async def _search(
        self, track: str, artist: str, album: str | None, strategy: str
    ) -> LookupResult[ResolvedRecording]:
        cleaned = clean_track_name(track)
        if cleaned != track:
            logger.debug("track_name_cleaned", original=track, cleaned=cleaned)

        candidates = await self._catalog.search_recording(cleaned, artist, album)
        if not candidates and cleaned != track:
            candidates = await self._catalog.search_recording(track, artist, album)

        best = self._matcher.best_candidate(candidates, cleaned, artist, album)
        if best is None:
            return LookupResult.not_found(source=strategy)
        return LookupResult.found(
            ResolvedRecording(recording_id=best.id, title=best.title, strategy=strategy),
            source=strategy,
        )
