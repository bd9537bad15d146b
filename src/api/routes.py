"""FastAPI API routes for Ganjeh.

Provides the unified search endpoint, the browse endpoints backed by the
Hybrid Resolver, and a health check.  Service dependencies are resolved
from ``app.state`` via FastAPI's ``Depends`` using the ``Annotated``
pattern.

# ─── API ROUTE MAP (Junior Developer Guide) ───────────────────────────
#
# Endpoint                                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/search                                           GET     Unified search
# /api/poets                                            GET     All poets
# /api/poets/{pid}                                      GET     Poet + categories
# /api/poets/{pid}/categories/{cid}                     GET     Category poems
# /api/poets/{pid}/categories/{cid}/chapters/{chid}     GET     Chapter + poems
# /api/poems/{poem_id}                                  GET     Single poem
# /api/health                                           GET     Health check
#
# Route handlers never catch domain errors themselves: ``GanjehError``
# subclasses propagate to ErrorHandlingMiddleware, which maps them to
# 400 / 404 / 502 / 503 JSON bodies.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

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
from src.services.hybrid_resolver import HybridResolver
from src.services.search_service import SearchService

router = APIRouter(prefix="/api")

_VERSION = "0.1.0"
_NOT_AVAILABLE = {404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}


# ---------------------------------------------------------------------------
# Dependency injection helpers — resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_resolver(request: Request) -> HybridResolver:
    """Return the hybrid resolver from application state."""
    return request.app.state.resolver


def _get_search_service(request: Request) -> SearchService:
    """Return the unified search service from application state."""
    return request.app.state.search_service


ResolverDep = Annotated[HybridResolver, Depends(_get_resolver)]
SearchDep = Annotated[SearchService, Depends(_get_search_service)]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Search poets, categories and poems",
)
async def search(
    search_service: SearchDep,
    q: str | None = None,
    type: str = "all",  # noqa: A002 — public query parameter name
    limit: int = 20,
    offset: int = 0,
    count: bool = False,
    poet_id: Annotated[int | None, Query(alias="poetId")] = None,
) -> JSONResponse:
    """Run a unified search; keys for sections that were not produced are omitted."""
    results = await search_service.search(
        q,
        search_type=type,
        limit=limit,
        offset=offset,
        poet_id=poet_id,
        with_count=count,
    )
    return JSONResponse(content=SearchResponse.payload(results))


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------


@router.get(
    "/poets",
    response_model=PoetListResponse,
    responses=_NOT_AVAILABLE,
    summary="List poets",
)
async def list_poets(resolver: ResolverDep) -> PoetListResponse:
    resolved = await resolver.list_poets()
    return PoetListResponse(
        source=resolved.source,
        fallback=resolved.fallback,
        poets=[p.model_dump() for p in resolved.value],
    )


@router.get(
    "/poets/{poet_id}",
    response_model=PoetPageResponse,
    responses=_NOT_AVAILABLE,
    summary="Poet page",
)
async def get_poet(poet_id: int, resolver: ResolverDep) -> PoetPageResponse:
    """Return a poet with the categories listed on the poet's page."""
    resolved = await resolver.resolve_poet(poet_id)
    page = resolved.value
    return PoetPageResponse(
        source=resolved.source,
        fallback=resolved.fallback,
        poet=page.poet.model_dump(),
        categories=[c.model_dump() for c in page.categories],
    )


@router.get(
    "/poets/{poet_id}/categories/{category_id}",
    response_model=CategoryPoemsResponse,
    responses=_NOT_AVAILABLE,
    summary="Category poems",
)
async def get_category(
    poet_id: int,
    category_id: int,
    resolver: ResolverDep,
) -> CategoryPoemsResponse:
    resolved = await resolver.resolve_category_poems(poet_id, category_id)
    return CategoryPoemsResponse(
        source=resolved.source,
        fallback=resolved.fallback,
        poet_id=poet_id,
        category_id=category_id,
        poems=[p.model_dump() for p in resolved.value],
    )


@router.get(
    "/poets/{poet_id}/categories/{category_id}/chapters/{chapter_id}",
    response_model=ChapterPageResponse,
    responses=_NOT_AVAILABLE,
    summary="Chapter page",
)
async def get_chapter(
    poet_id: int,
    category_id: int,
    chapter_id: int,
    resolver: ResolverDep,
) -> ChapterPageResponse:
    resolved = await resolver.resolve_chapter(poet_id, category_id, chapter_id)
    page = resolved.value
    return ChapterPageResponse(
        source=resolved.source,
        fallback=resolved.fallback,
        chapter=page.chapter.model_dump(),
        category_title=page.category_title,
        poems=[p.model_dump() for p in page.poems],
    )


@router.get(
    "/poems/{poem_id}",
    response_model=PoemResponse,
    responses=_NOT_AVAILABLE,
    summary="Single poem",
)
async def get_poem(poem_id: int, resolver: ResolverDep) -> PoemResponse:
    resolved = await resolver.resolve_poem(poem_id)
    return PoemResponse(
        source=resolved.source,
        fallback=resolved.fallback,
        poem=resolved.value.model_dump(),
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means the Local Store is not configured: browsing still
    works through the Remote Archive but search answers 503.
    """
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    search_service = getattr(request.app.state, "search_service", None)
    search_ok = bool(search_service is not None and search_service.configured)
    providers["search"] = search_ok

    return HealthResponse(
        status="healthy" if search_ok else "degraded",
        version=_VERSION,
        providers=providers,
    )
