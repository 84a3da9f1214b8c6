"""Utility modules for creditgraph.

- **errors** -- exception hierarchy rooted at CreditGraphError.
- **logging** -- structlog setup (console in development, JSON in production).
- **rate_limiter** -- per-source minimum-interval throttle and one-shot 429 retry.
- **concurrency** -- semaphore-bounded gather and deadline races.
- **text_normalizer** -- comparison keys and title cleanup.
"""

from creditgraph.utils.concurrency import race_with_deadline, throttled_gather
from creditgraph.utils.errors import (
    CacheError,
    CacheFormatMismatchError,
    CacheQuotaExceededError,
    CatalogError,
    ConfigurationError,
    CreditGraphError,
    InvalidEntityError,
    RateLimitError,
    TransientError,
)
from creditgraph.utils.logging import configure_logging, get_logger
from creditgraph.utils.rate_limiter import RateLimiter, retry_on_rate_limit
from creditgraph.utils.text_normalizer import (
    clean_track_name,
    normalize,
    normalize_artist,
    normalize_for_key,
)

__all__ = [
    "CacheError",
    "CacheFormatMismatchError",
    "CacheQuotaExceededError",
    "CatalogError",
    "ConfigurationError",
    "CreditGraphError",
    "InvalidEntityError",
    "RateLimitError",
    "RateLimiter",
    "TransientError",
    "clean_track_name",
    "configure_logging",
    "get_logger",
    "normalize",
    "normalize_artist",
    "normalize_for_key",
    "race_with_deadline",
    "retry_on_rate_limit",
    "throttled_gather",
]
