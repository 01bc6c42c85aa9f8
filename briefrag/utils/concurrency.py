"""Bounded concurrency and retry primitives for provider calls.

Two helpers are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with every awaitable wrapped
   in a semaphore acquire/release, so at most N run at once.  Used for the
   per-chunk embedding pool and for multi-document ingestion.

2. **retry_with_backoff** -- re-invokes an async callable on retryable
   :class:`~briefrag.utils.errors.BriefRagError` subclasses with
   exponentially growing, capped delays.  Non-retryable errors and
   exhausted retries propagate unchanged.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from briefrag.utils.errors import BriefRagError
from briefrag.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    limit: int = 4,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``limit`` at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    semaphore:
        Semaphore to share with other callers.  When omitted a private one
        sized by *limit* is created for this call.
    limit:
        Concurrency bound used when no semaphore is passed.
    return_exceptions:
        Mirrors ``asyncio.gather``: exceptions are returned in place of
        results instead of being raised.

    Returns
    -------
    list
        Results in input order.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(max(1, limit))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros),
        return_exceptions=return_exceptions,
    )


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number *attempt* (0-based): ``base * 2**attempt`` capped."""
    return min(max_delay, base_delay * (2**attempt))


async def retry_with_backoff(
    func: Callable[[], Awaitable[_T]],
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    operation: str = "provider_call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> _T:
    """Await ``func()`` and retry it on retryable errors.

    Parameters
    ----------
    func:
        Zero-argument coroutine factory; called once per attempt.
    max_retries:
        Retries after the first attempt.  ``0`` disables retrying.
    base_delay, max_delay:
        Exponential backoff parameters in seconds.
    operation:
        Label used in log events.
    sleep:
        Awaitable sleep function, injectable for tests.

    Raises
    ------
    BriefRagError
        The last error when retries are exhausted, or the first
        non-retryable one.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except BriefRagError as exc:
            if not exc.retryable or attempt >= max_retries:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            _logger.warning(
                "retrying_after_error",
                operation=operation,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay=delay,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await sleep(delay)
            attempt += 1
