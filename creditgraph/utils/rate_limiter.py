"""Per-source minimum-interval throttle for outbound catalog calls.

Each provider owns exactly one :class:`RateLimiter` and routes every request
through it, so alias lookups and supplemental credit fetches triggered deep
inside the services share the same budget as the primary search.

Usage::

    limiter = RateLimiter(min_interval=1.1, name="musicbrainz")
    await limiter.throttle()
    response = await asyncio.to_thread(musicbrainzngs.search_recordings, ...)
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, TypeVar

import structlog

from creditgraph.utils.errors import RateLimitError
from creditgraph.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


class RateLimiter:
    """Blocks callers until ``min_interval`` seconds have passed since the
    previous :meth:`throttle` call returned.

    Waiters queue on an :class:`asyncio.Lock`, which wakes them in FIFO
    arrival order.
    """

    def __init__(self, min_interval: float, name: str = "default") -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self._min_interval = min_interval
        self._name = name
        self._last_request_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def name(self) -> str:
        return self._name

    async def throttle(self) -> None:
        """Wait for this source's next request slot."""
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self._min_interval:
                    await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def __aenter__(self) -> RateLimiter:
        await self.throttle()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


async def retry_on_rate_limit(
    call: Callable[[], Awaitable[_T]],
    backoff_seconds: float,
    provider_name: str,
) -> _T:
    """Run *call*, retrying exactly once after *backoff_seconds* on a 429.

    A second :class:`RateLimitError` propagates to the caller unchanged.

    Args:
        call: Zero-argument coroutine factory; it must pass through the
              provider's limiter itself so the retry is throttled too.
        backoff_seconds: Fixed wait before the single retry.  An upstream
                         ``Retry-After`` hint wins when it is longer.
        provider_name: Used for log context only.
    """
    try:
        return await call()
    except RateLimitError as exc:
        wait = max(backoff_seconds, exc.retry_after or 0.0)
        _logger.warning(
            "rate_limited_backing_off",
            provider=provider_name,
            wait_seconds=wait,
        )
        await asyncio.sleep(wait)
    return await call()
