"""Artist and album artwork lookup across an ordered provider chain.

Providers are tried in order; the first URL wins.  Each attempt is turned
into a :class:`LookupResult` so a provider that *has no image* and a
provider that *failed* are told apart:

- a clean miss across the whole chain is cached (negative cache), so the
  next request for the same artist costs nothing;
- a chain that saw any error is not cached, so an outage is retried later.

:meth:`ImageResolver.apply_images` is the graph-level entry point used by
GraphAssembler: it fans every lookup out at once and applies whatever
finished before one shared deadline.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Sequence

import structlog
from cachetools import LRUCache

from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.models.lookup import LookupResult
from creditgraph.services.alias_resolver import artist_entity_id
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.utils.concurrency import race_with_deadline
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize, normalize_artist

logger: structlog.BoundLogger = get_logger(__name__)

_MISS = object()


class ImageResolver:
    """Provider fallback chain with LRU positive/negative caching."""

    def __init__(
        self,
        artist_providers: Sequence[IImageProvider],
        album_providers: Sequence[IImageProvider] = (),
        cache_size: int = 1000,
        timeout_seconds: float = 15.0,
        secondary_limit: int = 5,
    ) -> None:
        self._artist_providers = list(artist_providers)
        self._album_providers = list(album_providers)
        self._artist_cache: LRUCache[str, str | None] = LRUCache(maxsize=cache_size)
        self._album_cache: LRUCache[str, str | None] = LRUCache(maxsize=cache_size)
        self._timeout = timeout_seconds
        self._secondary_limit = secondary_limit
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------
    # Single lookups
    # ------------------------------------------------------------------

    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        """Return an image URL for an artist, or None."""
        key = mbid or normalize_artist(name)
        return await self._lookup(
            cache=self._artist_cache,
            key=key,
            providers=self._artist_providers,
            fetch=lambda provider: provider.fetch_artist_image(name, mbid),
            subject=name,
        )

    async def fetch_album_image(self, artist: str, album: str) -> str | None:
        """Return an artwork URL for a release, or None."""
        key = f"{normalize_artist(artist)}::{normalize(album)}"
        return await self._lookup(
            cache=self._album_cache,
            key=key,
            providers=self._album_providers,
            fetch=lambda provider: provider.fetch_album_image(artist, album),
            subject=f"{artist} - {album}",
        )

    async def _lookup(
        self,
        cache: LRUCache[str, str | None],
        key: str,
        providers: Sequence[IImageProvider],
        fetch: Callable[[IImageProvider], Awaitable[str | None]],
        subject: str,
    ) -> str | None:
        cached = cache.get(key, _MISS)
        if cached is not _MISS:
            self._hits += 1
            return cached
        self._misses += 1

        saw_error = False
        for provider in providers:
            if not provider.is_available():
                continue
            result = await self._attempt(provider, fetch)
            if result.is_found:
                cache[key] = result.value
                logger.debug("image_found", subject=subject, source=result.source)
                return result.value
            if result.is_error:
                saw_error = True
                logger.warning(
                    "image_provider_failed",
                    subject=subject,
                    provider=result.source,
                    error=str(result.error),
                )

        if not saw_error:
            cache[key] = None
        return None

    @staticmethod
    async def _attempt(
        provider: IImageProvider,
        fetch: Callable[[IImageProvider], Awaitable[str | None]],
    ) -> LookupResult[str]:
        source = provider.get_provider_name()
        try:
            url = await fetch(provider)
        except Exception as exc:  # noqa: BLE001
            return LookupResult.failed(exc, source=source)
        if url:
            return LookupResult.found(url, source=source)
        return LookupResult.not_found(source=source)

    # ------------------------------------------------------------------
    # Graph-level resolution
    # ------------------------------------------------------------------

    async def apply_images(
        self,
        graph: GraphAccumulator,
        primary_artist_ids: Sequence[str],
        album_artist: str,
        track_entity_id: str | None = None,
        album_entity_id: str | None = None,
        album_title: str | None = None,
        single_title: str | None = None,
    ) -> int:
        """Race every image lookup for *graph* against one deadline.

        Primary artists are always looked up; other artists are capped at
        ``secondary_limit`` in graph order.  The track takes the single's
        artwork when one was found, otherwise the album's.  Returns the
        number of images applied.
        """
        primary = set(primary_artist_ids)
        tasks: dict[tuple[str, str], Awaitable[str | None]] = {}

        secondary_taken = 0
        for entity in graph.artists():
            if entity.image is not None:
                continue
            if entity.id not in primary:
                if secondary_taken >= self._secondary_limit:
                    continue
                secondary_taken += 1
            mbid = (
                entity.source_id
                if entity.source_id and entity.id == artist_entity_id(entity.source_id)
                else None
            )
            tasks[("artist", entity.id)] = self.fetch_artist_image(entity.name, mbid)

        if album_entity_id and album_title:
            tasks[("album", album_entity_id)] = self.fetch_album_image(album_artist, album_title)
        if track_entity_id and single_title:
            tasks[("single", track_entity_id)] = self.fetch_album_image(album_artist, single_title)

        results = await race_with_deadline(tasks, timeout=self._timeout)

        applied = 0
        for (kind, entity_id), url in results.items():
            if not url or kind == "single":
                continue
            graph.set_image(entity_id, url)
            applied += 1

        if track_entity_id:
            track_image = results.get(("single", track_entity_id))
            if not track_image and album_entity_id:
                track_image = results.get(("album", album_entity_id))
            if track_image:
                graph.set_image(track_entity_id, track_image)
                applied += 1

        logger.info(
            "images_applied",
            requested=len(tasks),
            completed=len(results),
            applied=applied,
        )
        return applied

    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._artist_cache.clear()
        self._album_cache.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> dict[str, int]:
        return {
            "artist_entries": len(self._artist_cache),
            "album_entries": len(self._album_cache),
            "hits": self._hits,
            "misses": self._misses,
        }
