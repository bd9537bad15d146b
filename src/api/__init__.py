"""Ganjeh API layer — routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    CategoryPoemsResponse,
    ChapterPageResponse,
    ErrorResponse,
    HealthResponse,
    PoemResponse,
    PoetListResponse,
    PoetPageResponse,
    SearchResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "CategoryPoemsResponse",
    "ChapterPageResponse",
    "ErrorResponse",
    "HealthResponse",
    "PoemResponse",
    "PoetListResponse",
    "PoetPageResponse",
    "SearchResponse",
]
