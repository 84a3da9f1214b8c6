"""Shared concurrency helpers for graph assembly.

Two patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with an optional semaphore
   around each awaitable.  Used to fan out alias fetches without queueing
   dozens of coroutines on a provider's rate limiter at once.

2. **race_with_deadline** -- run keyed coroutines concurrently against one
   overall timeout and keep whatever finished in time.  Image resolution
   uses this: late results are abandoned, not treated as errors.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Hashable, TypeVar

import structlog

from creditgraph.utils.logging import get_logger

_T = TypeVar("_T")
_K = TypeVar("_K", bound=Hashable)

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore bounding how many run at once.  ``None`` means
        no bound.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def race_with_deadline(
    coros: dict[_K, Awaitable[_T]],
    timeout: float,
) -> dict[_K, _T]:
    """Run keyed coroutines concurrently and collect those done by *timeout*.

    Parameters
    ----------
    coros:
        Mapping of caller-chosen key to awaitable.
    timeout:
        Overall deadline in seconds shared by every coroutine.

    Returns
    -------
    dict
        Results of the coroutines that completed successfully in time.
        Failed coroutines are logged and omitted.  Coroutines still running
        at the deadline are cancelled locally; requests they already sent
        upstream are not recalled.
    """
    if not coros:
        return {}

    tasks: dict[asyncio.Task[_T], _K] = {
        asyncio.ensure_future(coro): key for key, coro in coros.items()
    }
    done, pending = await asyncio.wait(tasks.keys(), timeout=timeout)

    for task in pending:
        task.cancel()
    if pending:
        _logger.info(
            "deadline_reached",
            completed=len(done),
            abandoned=len(pending),
            timeout_seconds=timeout,
        )

    results: dict[_K, _T] = {}
    for task in done:
        key = tasks[task]
        exc = task.exception()
        if exc is not None:
            _logger.warning("deadline_task_failed", key=str(key), error=str(exc))
            continue
        results[key] = task.result()
    return results
