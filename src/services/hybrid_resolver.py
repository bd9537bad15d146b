"""Hybrid Resolver -- routes each lookup to the Local Store or the Remote Archive.

Architecture overview for junior developers
--------------------------------------------
The Local Store mirrors only a handful of poets.  For every request the
resolver decides, without any cached state, which tier should answer:

  POET-SCOPED LOOKUPS (poet page, category page, chapter page):
    1. Ask the Local Store ``has_poet(poet_id)`` -- a primary-key probe,
       bounded by ``local_timeout``.  An error or timeout counts as "no".
    2. "yes" -> read from the Local Store.  If that read errors, returns
       nothing (row vanished), or returns an empty category (the import
       may have mirrored only the first few categories of a preview-tier
       poet), fall back to the Remote Archive.
    3. "no"  -> go straight to the Remote Archive; the Local Store is not
       touched again.

  BARE POEM LOOKUP (poem id only):
    Local ``get_poem`` first; ``None`` or an error -> Remote Archive.

  POET LIST:
    The Remote Archive is authoritative and complete, so it answers first;
    the Local Store's (partial) list is the degraded fallback.

Remote calls are retried with exponential backoff on transient failures
(transport errors, 5xx, 429).  When the Remote Archive still fails, the
caller gets a typed ``*NotAvailable`` error carrying the upstream status.
Local Store errors never surface while a Remote path exists.

Every resolution is logged with ``source``, ``fallback`` and
``duration_ms``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

from src.interfaces.local_store_provider import ILocalStoreProvider
from src.interfaces.remote_archive_provider import IRemoteArchiveProvider
from src.models.poetry import ChapterPage, DataSource, Poem, Poet, PoetPage, Resolved
from src.utils.errors import (
    CategoryNotAvailable,
    ChapterNotAvailable,
    EntityNotAvailableError,
    LocalStoreError,
    PoemNotAvailable,
    PoetNotAvailable,
    QueryValidationError,
    RemoteArchiveError,
)
from src.utils.logging import get_logger
from src.utils.retry import RESOLVER_RETRY_POLICY, RetryPolicy, retry_remote

_T = TypeVar("_T")

_DEFAULT_LOCAL_TIMEOUT = 2.0


def _require_id(name: str, value: int) -> None:
    if value < 1:
        raise QueryValidationError(f"{name} must be a positive integer, got {value}")


class HybridResolver:
    """Serves poets, categories, chapters and poems from the best available tier.

    Holds only its two clients and immutable configuration; safe to share
    across concurrent requests.
    """

    def __init__(
        self,
        remote: IRemoteArchiveProvider,
        local: ILocalStoreProvider | None = None,
        local_timeout: float = _DEFAULT_LOCAL_TIMEOUT,
        retry_policy: RetryPolicy = RESOLVER_RETRY_POLICY,
    ) -> None:
        """Initialise the resolver with injected dependencies.

        Parameters
        ----------
        remote:
            The authoritative Remote Archive client.
        local:
            The Local Store client, or ``None`` when no store is configured
            (every lookup then goes to the Remote Archive).
        local_timeout:
            Seconds allowed for the ``has_poet`` routing probe.
        retry_policy:
            Backoff applied to Remote Archive calls.
        """
        self._remote = remote
        self._local = local
        self._local_timeout = local_timeout
        self._retry_policy = retry_policy
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Routing helpers
    # ------------------------------------------------------------------

    async def is_local(self, poet_id: int) -> bool:
        """Return ``True`` if *poet_id* should be served by the Local Store."""
        if self._local is None:
            return False
        try:
            return await asyncio.wait_for(self._local.has_poet(poet_id), self._local_timeout)
        except (LocalStoreError, asyncio.TimeoutError) as exc:
            self._logger.warning(
                "local_store_probe_failed",
                poet_id=poet_id,
                error=str(exc) or type(exc).__name__,
            )
            return False

    async def _try_local(
        self,
        operation: str,
        call: Callable[[], Awaitable[_T]],
        **context: Any,
    ) -> _T | None:
        """Run a Local Store read, turning an error into ``None``."""
        try:
            return await call()
        except LocalStoreError as exc:
            self._logger.warning(
                "local_store_read_failed",
                operation=operation,
                error=str(exc),
                **context,
            )
            return None

    async def _from_remote(
        self,
        operation: str,
        call: Callable[[], Awaitable[_T]],
        error_cls: type[EntityNotAvailableError],
        **context: Any,
    ) -> _T:
        try:
            return await retry_remote(call, self._retry_policy, operation=operation)
        except RemoteArchiveError as exc:
            self._logger.error(
                "remote_archive_unavailable",
                operation=operation,
                status=exc.status,
                error=str(exc),
                **context,
            )
            raise error_cls(
                f"{operation} failed: {exc.message}",
                status=exc.status,
                provider_name=exc.provider_name,
            ) from exc

    def _resolved(
        self,
        operation: str,
        value: _T,
        source: DataSource,
        fallback: bool,
        started: float,
        **context: Any,
    ) -> Resolved[_T]:
        self._logger.info(
            "resolver_resolved",
            operation=operation,
            source=source.value,
            fallback=fallback,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
            **context,
        )
        return Resolved(value=value, source=source, fallback=fallback)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def resolve_poet(self, poet_id: int) -> Resolved[PoetPage]:
        """Return the poet page (poet + categories) for *poet_id*.

        A mirrored poet whose page has no non-empty categories (a preview
        import whose categories all failed, or a poet mid-import) is treated
        as a local miss and served from the Remote Archive.

        Raises
        ------
        PoetNotAvailable
            The poet is not local and the Remote Archive failed.
        """
        _require_id("poet_id", poet_id)
        started = time.monotonic()
        fallback = False

        if await self.is_local(poet_id):
            page = await self._try_local(
                "resolve_poet", lambda: self._local.get_poet(poet_id), poet_id=poet_id
            )
            if page is not None and page.categories:
                return self._resolved(
                    "resolve_poet", page, DataSource.LOCAL, False, started, poet_id=poet_id
                )
            fallback = True

        page = await self._from_remote(
            "resolve_poet",
            lambda: self._remote.get_poet(poet_id),
            PoetNotAvailable,
            poet_id=poet_id,
        )
        return self._resolved(
            "resolve_poet", page, DataSource.REMOTE, fallback, started, poet_id=poet_id
        )

    async def resolve_category_poems(
        self,
        poet_id: int,
        category_id: int,
    ) -> Resolved[list[Poem]]:
        """Return the poems of a category (including its chapters' poems)."""
        _require_id("poet_id", poet_id)
        _require_id("category_id", category_id)
        started = time.monotonic()
        context = {"poet_id": poet_id, "category_id": category_id}
        fallback = False

        if await self.is_local(poet_id):
            poems = await self._try_local(
                "resolve_category_poems",
                lambda: self._local.get_category_poems(poet_id, category_id),
                **context,
            )
            if poems:
                return self._resolved(
                    "resolve_category_poems", poems, DataSource.LOCAL, False, started, **context
                )
            fallback = True

        poems = await self._from_remote(
            "resolve_category_poems",
            lambda: self._remote.get_category_poems(poet_id, category_id),
            CategoryNotAvailable,
            **context,
        )
        return self._resolved(
            "resolve_category_poems", poems, DataSource.REMOTE, fallback, started, **context
        )

    async def resolve_chapter(
        self,
        poet_id: int,
        category_id: int,
        chapter_id: int,
    ) -> Resolved[ChapterPage]:
        """Return a chapter with its poems."""
        _require_id("poet_id", poet_id)
        _require_id("category_id", category_id)
        _require_id("chapter_id", chapter_id)
        started = time.monotonic()
        context = {"poet_id": poet_id, "category_id": category_id, "chapter_id": chapter_id}
        fallback = False

        if await self.is_local(poet_id):
            page = await self._try_local(
                "resolve_chapter",
                lambda: self._local.get_chapter(poet_id, category_id, chapter_id),
                **context,
            )
            if page is not None:
                return self._resolved(
                    "resolve_chapter", page, DataSource.LOCAL, False, started, **context
                )
            fallback = True

        page = await self._from_remote(
            "resolve_chapter",
            lambda: self._remote.get_chapter(poet_id, category_id, chapter_id),
            ChapterNotAvailable,
            **context,
        )
        return self._resolved(
            "resolve_chapter", page, DataSource.REMOTE, fallback, started, **context
        )

    async def resolve_poem(self, poem_id: int) -> Resolved[Poem]:
        """Return a poem by id; the owning poet does not need to be known."""
        _require_id("poem_id", poem_id)
        started = time.monotonic()
        fallback = False

        if self._local is not None:
            poem = await self._try_local(
                "resolve_poem", lambda: self._local.get_poem(poem_id), poem_id=poem_id
            )
            if poem is not None:
                return self._resolved(
                    "resolve_poem", poem, DataSource.LOCAL, False, started, poem_id=poem_id
                )
            fallback = True

        poem = await self._from_remote(
            "resolve_poem",
            lambda: self._remote.get_poem(poem_id),
            PoemNotAvailable,
            poem_id=poem_id,
        )
        return self._resolved(
            "resolve_poem", poem, DataSource.REMOTE, fallback, started, poem_id=poem_id
        )

    async def list_poets(self) -> Resolved[list[Poet]]:
        """Return every poet, degrading to the mirrored subset if the archive is down.

        Unlike the per-poet reads this asks the Remote Archive first: the
        Local Store only holds the mirrored subset, so serving it first
        would hide every poet that was never imported.
        """
        started = time.monotonic()
        try:
            poets = await retry_remote(
                self._remote.get_poets, self._retry_policy, operation="list_poets"
            )
            return self._resolved("list_poets", poets, DataSource.REMOTE, False, started)
        except RemoteArchiveError as exc:
            remote_error = exc
            self._logger.warning(
                "remote_poet_list_failed", status=exc.status, error=str(exc)
            )

        if self._local is not None:
            poets = await self._try_local("list_poets", self._local.list_poets)
            if poets:
                return self._resolved("list_poets", poets, DataSource.LOCAL, True, started)

        raise PoetNotAvailable(
            f"list_poets failed: {remote_error.message}",
            status=remote_error.status,
            provider_name=remote_error.provider_name,
        ) from remote_error
