"""In-memory key/value storage for the track cache.

Used when persistence is disabled and throughout the test suite.  Applies
the same optional byte quota as the SQLite storage so quota recovery can be
exercised without touching disk.
"""

from __future__ import annotations

import structlog

from creditgraph.interfaces.cache_storage import ICacheStorage
from creditgraph.utils.errors import CacheQuotaExceededError

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheStorage(ICacheStorage):
    """Dict-backed string storage."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
            size = len(value.encode("utf-8"))
            if used + size > self._quota_bytes:
                raise CacheQuotaExceededError(
                    message=f"Writing {size} bytes would exceed quota ({used}/{self._quota_bytes} used)",
                    provider_name="memory-cache",
                )
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
