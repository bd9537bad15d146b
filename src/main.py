"""Ganjeh FastAPI application entry point.

Wires together the Remote Archive client, the Local Store client, the
Hybrid Resolver, the Unified Search Engine, and the routes via dependency
injection.  Loads configuration from ``.env`` and ``config/config.yaml``
and configures structured logging.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.providers.local.sqlite_local_store import SQLiteLocalStore
from src.providers.remote.ganjoor_api_provider import GanjoorAPIProvider
from src.services.hybrid_resolver import HybridResolver
from src.services.search_service import SearchService
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
    component="api",
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.remote_archive_timeout)

    # -- Remote Archive --
    remote = GanjoorAPIProvider(
        http_client=http_client,
        base_url=app_settings.remote_archive_base_url,
        timeout=app_settings.remote_archive_timeout,
    )

    # -- Local Store (optional) --
    local: SQLiteLocalStore | None = None
    if app_settings.local_store_configured:
        local = SQLiteLocalStore(
            db_path=app_settings.local_store_path,
            read_only=app_settings.local_store_read_only,
        )
    else:
        _logger.warning("local_store_not_configured")

    # -- Services --
    resolver = HybridResolver(
        remote=remote,
        local=local,
        local_timeout=app_settings.local_store_timeout,
    )
    search_config = app_config.get("search", {})
    search_service = SearchService(
        local=local,
        remote=remote,
        resolver=resolver,
        fallback_max_categories=search_config.get("fallback_max_categories", 20),
        fallback_scan_concurrency=search_config.get("fallback_scan_concurrency", 1),
        min_query_length=search_config.get("min_query_length", 2),
        max_limit=search_config.get("max_limit", 100),
    )

    provider_registry: dict[str, bool] = {
        remote.get_provider_name(): True,
        "sqlite_local_store": local is not None,
    }

    return {
        "http_client": http_client,
        "remote": remote,
        "local": local,
        "resolver": resolver,
        "search_service": search_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        local_store=components["local"] is not None,
        remote_archive=settings.remote_archive_base_url,
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Ganjeh API",
        version="0.1.0",
        description=(
            "Browse and search Persian poetry from the Ganjoor archive, served "
            "from a local SQLite mirror for the most-read poets and from the "
            "Ganjoor REST API for everything else."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()
