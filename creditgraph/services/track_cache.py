"""Capacity-bounded, TTL-expiring persistent cache of resolved track graphs.

Layout in the underlying :class:`ICacheStorage`:

    creditgraph-track-index            -> {"keys": [...MRU first], "formatVersion": 1}
    creditgraph-track-<artist>::<track>[::<album>] -> CachedEntry JSON

The index order is the only LRU signal.  Eviction policy:

- ``get`` on an entry older than the TTL removes it and reports a miss;
- ``put`` into a full index evicts from the tail (least recently used);
- a storage quota failure evicts a burst of the oldest entries and retries
  the write once; a second failure is logged and the put reports False.

Index read-modify-write runs under one ``asyncio.Lock``, so concurrent
assemblies in this process never interleave index updates.  Storage and
serialization failures never escape: the cache degrades to a miss.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable

import structlog
from pydantic import ValidationError

from creditgraph.interfaces.cache_storage import ICacheStorage
from creditgraph.models.cache import CACHE_FORMAT_VERSION, CachedEntry, CacheIndex, CacheStats
from creditgraph.models.graph import MusicGraph
from creditgraph.utils.errors import CacheError, CacheFormatMismatchError, CacheQuotaExceededError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize_for_key

logger: structlog.BoundLogger = get_logger(__name__)

ENTRY_PREFIX = "creditgraph-track-"
INDEX_KEY = "creditgraph-track-index"

DEFAULT_CAPACITY = 150
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_EVICTION_BURST = 10
KEY_COMPONENT_LENGTH = 50


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class TrackCache:
    """LRU + TTL cache of track subgraphs over a string storage."""

    def __init__(
        self,
        storage: ICacheStorage,
        capacity: int = DEFAULT_CAPACITY,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        eviction_burst: int = DEFAULT_EVICTION_BURST,
        clock: Callable[[], int] = _epoch_millis,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._storage = storage
        self._capacity = capacity
        self._ttl_ms = int(ttl_seconds * 1000)
        self._eviction_burst = eviction_burst
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def make_key(track: str, artist: str, album: str | None = None) -> str:
        """``artist::track[::album]`` with each component normalized and truncated."""
        parts = [
            normalize_for_key(artist, KEY_COMPONENT_LENGTH),
            normalize_for_key(track, KEY_COMPONENT_LENGTH),
        ]
        if album:
            parts.append(normalize_for_key(album, KEY_COMPONENT_LENGTH))
        return "::".join(parts)

    @staticmethod
    def _entry_key(key: str) -> str:
        return f"{ENTRY_PREFIX}{key}"

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> MusicGraph | None:
        """Return the cached graph for *key*, or None on a miss."""
        async with self._lock:
            index = await self._load_index()
            try:
                raw = await self._storage.get_item(self._entry_key(key))
            except CacheError as exc:
                logger.warning("cache_read_failed", key=key, error=str(exc))
                return None

            if raw is None:
                if key in index.keys:
                    index.keys.remove(key)
                    await self._save_index_quietly(index)
                logger.debug("cache_miss", key=key)
                return None

            entry = self._parse_entry(key, raw)
            now = self._clock()
            if entry is None or now - entry.cached_at > self._ttl_ms:
                if entry is not None:
                    logger.info("cache_expired", key=key, age_ms=now - entry.cached_at)
                await self._drop(index, key)
                await self._save_index_quietly(index)
                return None

            entry = entry.model_copy(
                update={"last_accessed_at": now, "hit_count": entry.hit_count + 1}
            )
            if key in index.keys:
                index.keys.remove(key)
            else:
                # Entry left behind by a failed removal; re-admit it within capacity.
                while len(index.keys) >= self._capacity:
                    await self._drop(index, index.keys[-1])
            index.keys.insert(0, key)
            try:
                await self._storage.set_item(self._entry_key(key), entry.to_json())
                await self._save_index(index)
            except CacheError as exc:
                # Bookkeeping only; the cached graph itself is still valid.
                logger.warning("cache_touch_failed", key=key, error=str(exc))

            logger.debug("cache_hit", key=key, hits=entry.hit_count)
            return entry.to_graph()

    async def put(self, key: str, graph: MusicGraph) -> bool:
        """Store *graph* under *key* at the MRU position.

        Returns False when the graph is empty or could not be written.
        """
        if graph.is_empty:
            logger.debug("cache_put_skipped_empty", key=key)
            return False

        payload = CachedEntry.from_graph(graph, self._clock()).to_json()
        async with self._lock:
            index = await self._load_index()
            if key in index.keys:
                index.keys.remove(key)
            while len(index.keys) >= self._capacity:
                await self._drop(index, index.keys[-1])
            index.keys.insert(0, key)

            try:
                await self._write(index, key, payload)
            except CacheQuotaExceededError as exc:
                logger.warning(
                    "cache_quota_exceeded",
                    key=key,
                    evicting=self._eviction_burst,
                    error=str(exc),
                )
                await self._evict_oldest(index, self._eviction_burst, keep=key)
                try:
                    await self._write(index, key, payload)
                except CacheError as retry_exc:
                    logger.error("cache_write_failed_after_eviction", key=key, error=str(retry_exc))
                    if key in index.keys:
                        index.keys.remove(key)
                    await self._save_index_quietly(index)
                    return False
            except CacheError as exc:
                logger.error("cache_write_failed", key=key, error=str(exc))
                if key in index.keys:
                    index.keys.remove(key)
                await self._save_index_quietly(index)
                return False

            logger.debug("cache_put", key=key, entries=len(index.keys))
            return True

    async def get_track(self, track: str, artist: str, album: str | None = None) -> MusicGraph | None:
        return await self.get(self.make_key(track, artist, album))

    async def put_track(
        self, track: str, artist: str, graph: MusicGraph, album: str | None = None
    ) -> bool:
        return await self.put(self.make_key(track, artist, album), graph)

    async def stats(self) -> CacheStats:
        """Entry count, oldest/newest ``cachedAt`` and cumulative hits."""
        async with self._lock:
            index = await self._load_index()
            cached_times: list[int] = []
            total_hits = 0
            for key in index.keys:
                try:
                    raw = await self._storage.get_item(self._entry_key(key))
                except CacheError:
                    continue
                entry = self._parse_entry(key, raw) if raw is not None else None
                if entry is None:
                    continue
                cached_times.append(entry.cached_at)
                total_hits += entry.hit_count

        def _to_datetime(millis: int) -> datetime:
            return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

        return CacheStats(
            track_count=len(index.keys),
            oldest_entry=_to_datetime(min(cached_times)) if cached_times else None,
            newest_entry=_to_datetime(max(cached_times)) if cached_times else None,
            total_hits=total_hits,
        )

    async def clear(self) -> None:
        """Drop every entry and the index."""
        async with self._lock:
            removed = await self._clear_storage()
        logger.info("cache_cleared", entries_removed=removed)

    async def cleanup_expired(self) -> int:
        """Remove expired or unreadable entries and index keys with no entry.

        Returns the number of index keys removed.
        """
        removed = 0
        async with self._lock:
            index = await self._load_index()
            now = self._clock()
            for key in list(index.keys):
                try:
                    raw = await self._storage.get_item(self._entry_key(key))
                except CacheError as exc:
                    logger.warning("cache_read_failed", key=key, error=str(exc))
                    continue
                entry = self._parse_entry(key, raw) if raw is not None else None
                if entry is None or now - entry.cached_at > self._ttl_ms:
                    await self._drop(index, key)
                    removed += 1
            if removed:
                await self._save_index_quietly(index)
        if removed:
            logger.info("cache_cleanup", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Internals (callers hold self._lock)
    # ------------------------------------------------------------------

    async def _load_index(self) -> CacheIndex:
        try:
            raw = await self._storage.get_item(INDEX_KEY)
        except CacheError as exc:
            logger.warning("cache_index_read_failed", error=str(exc))
            return CacheIndex()
        if raw is None:
            return CacheIndex()
        try:
            return self._parse_index(raw)
        except CacheFormatMismatchError as exc:
            logger.warning("cache_format_mismatch", error=str(exc))
            try:
                await self._clear_storage()
            except CacheError as clear_exc:
                logger.warning("cache_format_reset_failed", error=str(clear_exc))
            return CacheIndex()

    @staticmethod
    def _parse_index(raw: str) -> CacheIndex:
        try:
            index = CacheIndex.model_validate_json(raw)
        except ValidationError as exc:
            raise CacheFormatMismatchError(message=f"Unreadable cache index: {exc}") from exc
        if index.format_version != CACHE_FORMAT_VERSION:
            raise CacheFormatMismatchError(
                message=f"Cache index version {index.format_version}, "
                f"expected {CACHE_FORMAT_VERSION}"
            )
        # Duplicate keys would corrupt LRU accounting; keep first occurrence.
        index.keys = list(dict.fromkeys(index.keys))
        return index

    @staticmethod
    def _parse_entry(key: str, raw: str) -> CachedEntry | None:
        try:
            return CachedEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("cache_entry_corrupt", key=key, error=str(exc))
            return None

    async def _save_index(self, index: CacheIndex) -> None:
        index.format_version = CACHE_FORMAT_VERSION
        await self._storage.set_item(INDEX_KEY, index.to_json())

    async def _save_index_quietly(self, index: CacheIndex) -> None:
        try:
            await self._save_index(index)
        except CacheError as exc:
            logger.warning("cache_index_write_failed", error=str(exc))

    async def _write(self, index: CacheIndex, key: str, payload: str) -> None:
        await self._save_index(index)
        await self._storage.set_item(self._entry_key(key), payload)

    async def _drop(self, index: CacheIndex, key: str) -> None:
        if key in index.keys:
            index.keys.remove(key)
        try:
            await self._storage.remove_item(self._entry_key(key))
        except CacheError as exc:
            logger.warning("cache_remove_failed", key=key, error=str(exc))

    async def _evict_oldest(self, index: CacheIndex, count: int, keep: str) -> None:
        evicted = 0
        for key in reversed(list(index.keys)):
            if evicted >= count:
                break
            if key == keep:
                continue
            await self._drop(index, key)
            evicted += 1
        logger.info("cache_burst_evicted", evicted=evicted, remaining=len(index.keys))

    async def _clear_storage(self) -> int:
        removed = 0
        for stored_key in await self._storage.keys():
            if stored_key.startswith(ENTRY_PREFIX) and stored_key != INDEX_KEY:
                await self._storage.remove_item(stored_key)
                removed += 1
        await self._storage.remove_item(INDEX_KEY)
        return removed
