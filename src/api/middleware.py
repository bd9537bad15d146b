"""API middleware — CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``GanjehError`` subclasses (and any other exception) into
JSON ``ErrorResponse`` bodies.

# ─── MIDDLEWARE EXECUTION ORDER (Junior Developer Guide) ───────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st → inner
#     app.add_middleware(RequestLoggingMiddleware)   # added 2nd → outer
#
#   Request flow:
#     Client → RequestLogging → ErrorHandling → route handler
#   Response flow:
#     Client ← RequestLogging ← ErrorHandling ← route handler
#
# So RequestLoggingMiddleware sees the *final* response status code
# (even if ErrorHandling replaced an exception with a structured error).
#
# STATUS MAPPING (see _status_for):
#   EntityNotAvailableError  → 404 if the archive said 404, else 502
#   ConfigurationError       → 503
#   QueryValidationError     → 400
#   anything else            → 500
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    ConfigurationError,
    EntityNotAvailableError,
    GanjehError,
    QueryValidationError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_INTERNAL_ERROR = "Internal server error"


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def _status_for(exc: GanjehError) -> int:
    if isinstance(exc, EntityNotAvailableError):
        return 404 if exc.status == 404 else 502
    if isinstance(exc, ConfigurationError):
        return 503
    if isinstance(exc, QueryValidationError):
        return 400
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert exceptions raised by route handlers into ``{error, message}`` JSON.

    ``EntityNotAvailableError`` bodies carry the localized ``user_message``
    so readers never see upstream details.  Stack traces are logged
    server-side only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except GanjehError as exc:
            status_code = _status_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                status=status_code,
                path=str(request.url.path),
            )
            if isinstance(exc, EntityNotAvailableError):
                body = ErrorResponse(error=type(exc).__name__, message=exc.user_message)
            elif status_code == 500:
                body = ErrorResponse(error=_INTERNAL_ERROR, message=exc.message)
            else:
                body = ErrorResponse(error=type(exc).__name__, message=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
        except Exception as exc:
            _logger.exception(
                "unhandled_error",
                error_type=type(exc).__name__,
                path=str(request.url.path),
            )
            body = ErrorResponse(error=_INTERNAL_ERROR, message=str(exc) or type(exc).__name__)
            return JSONResponse(status_code=500, content=body.model_dump())
