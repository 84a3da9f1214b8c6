"""Cache storage adapters."""

from creditgraph.providers.cache.memory_cache_storage import MemoryCacheStorage
from creditgraph.providers.cache.sqlite_cache_storage import SQLiteCacheStorage

__all__ = ["MemoryCacheStorage", "SQLiteCacheStorage"]
