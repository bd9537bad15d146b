"""Utility modules for Ganjeh.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at GanjehError;
  each layer raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **concurrency** -- asyncio semaphore throttling and windowing helpers that
  keep Remote Archive fan-out under its rate limits.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **normalize** -- ``first_or_none`` and friends for loosely-shaped payloads.
- **retry** -- exponential-backoff retry for transient Remote Archive errors.
- **text_normalizer** -- Persian search normalization and LIKE escaping.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    CategoryNotAvailable,
    ChapterNotAvailable,
    ConfigurationError,
    EntityNotAvailableError,
    GanjehError,
    LocalStoreError,
    PoemNotAvailable,
    PoetNotAvailable,
    QueryValidationError,
    RemoteArchiveError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import throttled_gather, windowed

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Payload shape helpers --------------------------------------------------
from src.utils.normalize import first_or_none

# -- Retry with backoff -----------------------------------------------------
from src.utils.retry import RetryPolicy, retry_remote

# -- Persian search normalization -------------------------------------------
from src.utils.text_normalizer import escape_like, normalize_search_text

__all__ = [
    "CategoryNotAvailable",
    "ChapterNotAvailable",
    "ConfigurationError",
    "EntityNotAvailableError",
    "GanjehError",
    "LocalStoreError",
    "PoemNotAvailable",
    "PoetNotAvailable",
    "QueryValidationError",
    "RemoteArchiveError",
    "RetryPolicy",
    "configure_logging",
    "escape_like",
    "first_or_none",
    "get_logger",
    "normalize_search_text",
    "retry_remote",
    "throttled_gather",
    "windowed",
]
