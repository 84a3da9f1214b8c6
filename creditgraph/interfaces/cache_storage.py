"""Abstract base class for the key/value store behind TrackCache.

The storage only moves strings.  LRU ordering, TTL expiry and quota
recovery all live in :class:`creditgraph.services.track_cache.TrackCache`;
a storage's single extra duty is to raise
:class:`~creditgraph.utils.errors.CacheQuotaExceededError` when a write does
not fit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ICacheStorage(ABC):
    """Contract for persistent string storage."""

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Return the stored string, or ``None`` if *key* is absent."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value.

        Raises
        ------
        CacheQuotaExceededError
            When the write would exceed the storage's capacity.
        """

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove *key*.  A no-op when it does not exist."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """Return every stored key."""
