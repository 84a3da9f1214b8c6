"""SQLite-backed key/value storage for the track cache.

One table of ``(key, value, size_bytes, updated_at)`` rows in a local
database (``data/track_cache.db`` by default), accessed with ``aiosqlite``.
An optional byte quota mimics a browser-style storage budget: a write that
would push the total past it raises :class:`CacheQuotaExceededError`, as
does SQLite's own "database or disk is full".
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from creditgraph.interfaces.cache_storage import ICacheStorage
from creditgraph.utils.errors import CacheError, CacheQuotaExceededError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/track_cache.db")
_PROVIDER_NAME = "sqlite-cache"

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS cache_items (
    key         TEXT    PRIMARY KEY,
    value       TEXT    NOT NULL,
    size_bytes  INTEGER NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO cache_items (key, value, size_bytes)
VALUES (?, ?, ?)
ON CONFLICT(key)
DO UPDATE SET value      = excluded.value,
              size_bytes = excluded.size_bytes,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_USED_BYTES_SQL = "SELECT COALESCE(SUM(size_bytes), 0) FROM cache_items WHERE key != ?;"


class SQLiteCacheStorage(ICacheStorage):
    """Persistent string storage with an optional byte quota."""

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        quota_bytes: int | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._quota_bytes = quota_bytes

    async def initialize(self) -> None:
        """Create the table if it does not exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        logger.info("cache_db_initialized", path=str(self._db_path), quota_bytes=self._quota_bytes)

    async def get_item(self, key: str) -> str | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("SELECT value FROM cache_items WHERE key = ?;", (key,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheError(message=f"Cache read failed: {exc}", provider_name=_PROVIDER_NAME) from exc
        return row[0] if row else None

    async def set_item(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                if self._quota_bytes is not None:
                    cursor = await db.execute(_USED_BYTES_SQL, (key,))
                    (used,) = await cursor.fetchone()
                    if used + size > self._quota_bytes:
                        raise CacheQuotaExceededError(
                            message=f"Writing {size} bytes would exceed quota "
                            f"({used}/{self._quota_bytes} used)",
                            provider_name=_PROVIDER_NAME,
                        )
                await db.execute(_UPSERT_SQL, (key, value, size))
                await db.commit()
        except aiosqlite.OperationalError as exc:
            if "full" in str(exc).lower():
                raise CacheQuotaExceededError(
                    message=str(exc), provider_name=_PROVIDER_NAME
                ) from exc
            raise CacheError(message=f"Cache write failed: {exc}", provider_name=_PROVIDER_NAME) from exc
        except aiosqlite.Error as exc:
            raise CacheError(message=f"Cache write failed: {exc}", provider_name=_PROVIDER_NAME) from exc

    async def remove_item(self, key: str) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("DELETE FROM cache_items WHERE key = ?;", (key,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise CacheError(message=f"Cache delete failed: {exc}", provider_name=_PROVIDER_NAME) from exc

    async def keys(self) -> list[str]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("SELECT key FROM cache_items ORDER BY key;")
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise CacheError(message=f"Cache key listing failed: {exc}", provider_name=_PROVIDER_NAME) from exc
        return [row[0] for row in rows]

    async def used_bytes(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("SELECT COALESCE(SUM(size_bytes), 0) FROM cache_items;")
                (used,) = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheError(message=f"Cache size query failed: {exc}", provider_name=_PROVIDER_NAME) from exc
        return int(used)
