"""Exponential-backoff retry for Remote Archive calls.

The Remote Archive client itself never retries; callers that want
resilience (the Hybrid Resolver, the Import Pipeline) wrap a call in
:func:`retry_remote` with their own :class:`RetryPolicy`.

Only transient failures are retried -- a :class:`RemoteArchiveError` with
no HTTP status (transport error), a 5xx, or a 429.  A 4xx such as 404 is an
answer, not an outage, and is re-raised immediately, as is a ``malformed``
body that would decode the same way on every attempt.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

from src.utils.errors import RemoteArchiveError
from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters: ``delay = min(base * multiplier**attempt, max) +/- jitter``."""

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 4.0
    multiplier: float = 2.0
    jitter: float = 0.1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (0-based)."""
        delay = min(self.base_delay * (self.multiplier ** attempt), self.max_delay)
        if self.jitter:
            delay += delay * self.jitter * (random.random() * 2 - 1)
        return max(delay, 0.0)


RESOLVER_RETRY_POLICY = RetryPolicy()
IMPORT_RETRY_POLICY = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0)


async def retry_remote(
    call: Callable[[], Awaitable[_T]],
    policy: RetryPolicy = RESOLVER_RETRY_POLICY,
    *,
    operation: str = "remote_call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> _T:
    """Invoke *call* and retry it on transient :class:`RemoteArchiveError`.

    Parameters
    ----------
    call:
        Zero-argument factory returning a fresh awaitable per attempt.
    policy:
        Backoff parameters.
    operation:
        Name used in log events.
    sleep:
        Injected for tests so backoff does not actually wait.

    Returns
    -------
    _T
        The first successful result.

    Raises
    ------
    RemoteArchiveError
        The last error once retries are exhausted, or immediately for
        non-transient statuses.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except RemoteArchiveError as exc:
            if not exc.is_transient or attempt >= policy.max_retries:
                raise
            delay = policy.delay_for(attempt)
            attempt += 1
            _logger.warning(
                "remote_call_retry",
                operation=operation,
                status=exc.status,
                attempt=attempt,
                backoff_s=round(delay, 3),
            )
            await sleep(delay)
