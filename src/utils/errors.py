"""Custom exception hierarchy for the Ganjeh data-access layer.

All application exceptions inherit from :class:`GanjehError`, which
carries an optional ``provider_name`` so error handlers can identify which
data source (e.g. "ganjoor_api", "sqlite_local_store") caused the failure.

The hierarchy is organized by the layer that raises it:

    GanjehError  (base -- catch-all for any Ganjeh error)
    +-- ConfigurationError        (startup / missing Local Store config)
    +-- QueryValidationError      (bad id / malformed search arguments)
    +-- RemoteArchiveError        (Ganjoor API non-2xx or unreachable)
    +-- LocalStoreError           (SQLite failure, wraps the driver error)
    +-- EntityNotAvailableError   (resolver could not serve an entity)
        +-- PoetNotAvailable
        +-- CategoryNotAvailable
        +-- ChapterNotAvailable
        +-- PoemNotAvailable

Callers handle errors at exactly the right level -- the resolver falls back
to the Remote Archive on LocalStoreError, the API layer turns
EntityNotAvailableError into a localized 404/502 and ConfigurationError into
a 503.
"""

from __future__ import annotations


class GanjehError(Exception):
    """Base exception for all Ganjeh errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which data source triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[ganjoor_api] API request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup / request validation
# ---------------------------------------------------------------------------

class ConfigurationError(GanjehError):
    """Raised when configuration is invalid or missing (e.g. no Local Store path)."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QueryValidationError(GanjehError):
    """Raised when a lookup or search argument is rejected before any source is queried."""

    def __init__(
        self,
        message: str = "Invalid query",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Data-source errors
# ---------------------------------------------------------------------------

class RemoteArchiveError(GanjehError):
    """Raised when the Remote Archive answers non-2xx or cannot be reached.

    ``status`` is the HTTP status code, or ``None`` for transport failures
    (timeouts, DNS, connection resets) and undecodable bodies.
    ``malformed`` marks a response that arrived but could not be decoded
    into the expected shape; asking again would get the same body.
    """

    def __init__(
        self,
        message: str = "Remote archive request failed",
        status: int | None = None,
        provider_name: str | None = None,
        malformed: bool = False,
    ) -> None:
        self._status = status
        self._malformed = malformed
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def malformed(self) -> bool:
        return self._malformed

    @property
    def is_transient(self) -> bool:
        """``True`` for conditions worth retrying: transport failure, 5xx, or 429."""
        if self._malformed:
            return False
        return self._status is None or self._status >= 500 or self._status == 429


class LocalStoreError(GanjehError):
    """Raised when a Local Store query fails.

    The underlying driver exception is kept on ``cause`` (and chained via
    ``raise ... from``) so logs show the real failure.
    """

    def __init__(
        self,
        message: str = "Local store query failed",
        cause: BaseException | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._cause = cause
        super().__init__(message=message, provider_name=provider_name)

    @property
    def cause(self) -> BaseException | None:
        return self._cause


# ---------------------------------------------------------------------------
# Resolver errors -- surfaced to the UI as a localized error state
# ---------------------------------------------------------------------------

class EntityNotAvailableError(GanjehError):
    """Raised by the resolver when no source could serve the requested entity.

    ``status`` mirrors the upstream HTTP status when there was one, so the
    API layer can tell "does not exist" (404) from "archive is down".
    ``user_message`` is the localized text shown to readers.
    """

    user_message = "این محتوا در حال حاضر در دسترس نیست."

    def __init__(
        self,
        message: str = "Entity not available",
        status: int | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._status = status
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status(self) -> int | None:
        return self._status


class PoetNotAvailable(EntityNotAvailableError):
    user_message = "شاعر مورد نظر یافت نشد یا در دسترس نیست."


class CategoryNotAvailable(EntityNotAvailableError):
    user_message = "مجموعهٔ مورد نظر یافت نشد یا در دسترس نیست."


class ChapterNotAvailable(EntityNotAvailableError):
    user_message = "بخش مورد نظر یافت نشد یا در دسترس نیست."


class PoemNotAvailable(EntityNotAvailableError):
    user_message = "شعر مورد نظر یافت نشد یا در دسترس نیست."
