"""Shared concurrency primitives for Remote Archive fan-out.

The Remote Archive is slow and rate-limited, so any place that fans out
several calls (enriching a poet's categories with counts, the search
fallback scan) goes through one of these helpers instead of a bare
``asyncio.gather``.

1. **throttled_gather** -- a drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release.

2. **windowed** -- splits a sequence into consecutive windows of a fixed
   size, so a caller can gather one window at a time and stop early between
   windows while still appending results in input order.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterator, Sequence, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many run simultaneously.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


def windowed(items: Sequence[_T], size: int) -> Iterator[Sequence[_T]]:
    """Yield consecutive slices of *items* of length *size* (last may be shorter)."""
    if size < 1:
        raise ValueError("window size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]
