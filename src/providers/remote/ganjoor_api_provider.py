"""Ganjoor REST API adapter for the Remote Archive interface.

Talks to ``https://api.ganjoor.net/api/ganjoor`` over an injected
``httpx.AsyncClient`` and translates its JSON into the shared domain
models.  Endpoints used:

    GET /poets        -> list of poets
    GET /poet/{id}    -> {poet: {...}, cat: {id, children: [...]}}
    GET /cat/{id}     -> {poet: {name}, cat: {id, title, poems: [...], children: [...]}}
    GET /poem/{id}    -> {id, title, verses: [{text}], category: {poet, cat}}

This adapter never retries -- a non-2xx response or a transport failure
becomes a :class:`RemoteArchiveError` immediately and the caller decides.
Concurrent identical GETs are coalesced into one in-flight request; nothing
is kept once the request completes, and a request every caller has
abandoned is cancelled.  Bodies that cannot be decoded raise a
non-transient (``malformed``) error, so callers do not retry them.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from src.interfaces.remote_archive_provider import IRemoteArchiveProvider
from src.models.poetry import Category, Chapter, ChapterPage, Poem, Poet, PoetPage
from src.utils.concurrency import throttled_gather
from src.utils.errors import RemoteArchiveError
from src.utils.logging import get_logger
from src.utils.normalize import as_int, as_list, first_or_none

_DEFAULT_BASE_URL = "https://api.ganjoor.net/api/ganjoor"
_DEFAULT_TIMEOUT = 15.0
# Parallel /cat requests while enriching one poet's categories.
_DEFAULT_MAX_CONCURRENCY = 4
_PROVIDER_NAME = "ganjoor_api"


def _verses(raw: Any) -> list[str]:
    """Extract verse texts in order, dropping empty entries."""
    verses: list[str] = []
    for verse in as_list(raw):
        if isinstance(verse, dict) and verse.get("text"):
            verses.append(str(verse["text"]))
    return verses


def _slug(full_url: Any) -> str:
    if not full_url:
        return ""
    return str(full_url).removeprefix("/")


def _poet_from_payload(data: dict[str, Any]) -> Poet:
    return Poet(
        id=data["id"],
        name=data.get("name") or "",
        slug=_slug(data.get("fullUrl")),
        description=data.get("description") or None,
        birth_year=as_int(data.get("birthYearInLHijri")),
        death_year=as_int(data.get("deathYearInLHijri")),
    )


def _poems_from_listing(
    cat: dict[str, Any],
    *,
    poet_id: int,
    poet_name: str | None,
    category_id: int,
    category_title: str | None,
    chapter_id: int | None = None,
    chapter_title: str | None = None,
) -> list[Poem]:
    return [
        Poem(
            id=poem["id"],
            poet_id=poet_id,
            category_id=category_id,
            chapter_id=chapter_id,
            title=poem.get("title") or "",
            verses=_verses(poem.get("verses")),
            poet_name=poet_name,
            category_title=category_title,
            chapter_title=chapter_title,
        )
        for poem in as_list(cat.get("poems"))
    ]


class GanjoorAPIProvider(IRemoteArchiveProvider):
    """Remote Archive adapter for the public Ganjoor API.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    base_url:
        API root without a trailing slash.
    timeout:
        Per-request timeout in seconds.
    max_concurrency:
        Upper bound on parallel requests when one call fans out
        (category enrichment in :meth:`get_poet`).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        max_concurrency: int = _DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._waiters: dict[asyncio.Future[Any], int] = {}
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _get_json(self, path: str) -> Any:
        """GET *path*, sharing one request among concurrent identical callers.

        Each caller awaits the shared request through ``asyncio.shield`` so
        one of them being cancelled leaves the others untouched.  When the
        last waiter leaves before the request finishes, the request itself
        is cancelled and forgotten.
        """
        task = self._inflight.get(path)
        if task is None:
            task = asyncio.ensure_future(self._fetch(path))
            self._inflight[path] = task
            task.add_done_callback(lambda done, key=path: self._forget(key, done))
        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            self._release(path, task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        remaining = self._waiters[task] - 1
        if remaining:
            self._waiters[task] = remaining
            return
        del self._waiters[task]
        if not task.done():
            self._logger.debug("remote_archive_request_abandoned", path=key)
            # Drop it now so a new caller starts a fresh request.
            if self._inflight.get(key) is task:
                del self._inflight[key]
            task.cancel()

    def _forget(self, key: str, done: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is done:
            del self._inflight[key]
        # Mark the exception retrieved when every waiter was cancelled.
        if not done.cancelled():
            done.exception()

    async def _fetch(self, path: str) -> Any:
        url = f"{self._base_url}{path}"
        start = time.monotonic()
        try:
            response = await self._http.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("remote_archive_network_error", path=path, error=str(exc))
            raise RemoteArchiveError(
                f"Network error: {exc}",
                status=None,
                provider_name=_PROVIDER_NAME,
            ) from exc

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        if not response.is_success:
            self._logger.warning(
                "remote_archive_http_error",
                path=path,
                status=response.status_code,
                duration_ms=duration_ms,
            )
            raise RemoteArchiveError(
                f"API request failed: {response.reason_phrase or response.status_code}",
                status=response.status_code,
                provider_name=_PROVIDER_NAME,
            )

        self._logger.debug("remote_archive_request", path=path, duration_ms=duration_ms)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteArchiveError(
                f"Invalid JSON from {path}",
                status=None,
                provider_name=_PROVIDER_NAME,
                malformed=True,
            ) from exc

    @staticmethod
    def _decode_error(path: str, exc: Exception) -> RemoteArchiveError:
        return RemoteArchiveError(
            f"Unexpected payload from {path}: {exc}",
            status=None,
            provider_name=_PROVIDER_NAME,
            malformed=True,
        )

    # ------------------------------------------------------------------
    # IRemoteArchiveProvider
    # ------------------------------------------------------------------

    async def get_poets(self) -> list[Poet]:
        path = "/poets"
        data = await self._get_json(path)
        try:
            return [_poet_from_payload(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise self._decode_error(path, exc) from exc

    async def get_poet(self, poet_id: int, *, include_counts: bool = True) -> PoetPage:
        path = f"/poet/{poet_id}"
        data = await self._get_json(path)
        try:
            poet = _poet_from_payload(data["poet"])
            cat = data.get("cat") or {}
            root_id = cat.get("id")
            categories = [
                Category(
                    id=child["id"],
                    poet_id=poet_id,
                    parent_id=root_id,
                    title=child.get("title") or "",
                    url_slug=child.get("urlSlug"),
                    description=child.get("description") or None,
                )
                for child in as_list(cat.get("children"))
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise self._decode_error(path, exc) from exc

        if include_counts and categories:
            categories = await throttled_gather(
                [self._enrich_category(category) for category in categories],
                self._semaphore,
                return_exceptions=False,
            )

        return PoetPage(poet=poet, categories=categories)

    async def _enrich_category(self, category: Category) -> Category:
        """Fill in poem count and chapters; failures leave the category empty."""
        try:
            data = await self._get_json(f"/cat/{category.id}")
            cat = data.get("cat") or {}
            children = as_list(cat.get("children"))
            poem_count = len(as_list(cat.get("poems")))
        except (RemoteArchiveError, AttributeError) as exc:
            self._logger.warning(
                "category_count_failed",
                poet_id=category.poet_id,
                category_id=category.id,
                error=str(exc),
            )
            return category.model_copy(update={"poem_count": 0, "chapters": []})

        chapters: list[Chapter] = []
        for child in children:
            chapter_count = 0
            try:
                chapter_data = await self._get_json(f"/cat/{child['id']}")
                chapter_count = len(as_list((chapter_data.get("cat") or {}).get("poems")))
            except (RemoteArchiveError, AttributeError, KeyError) as exc:
                self._logger.warning(
                    "chapter_count_failed",
                    category_id=category.id,
                    chapter_id=child.get("id"),
                    error=str(exc),
                )
            if "id" not in child:
                continue
            poem_count += chapter_count
            chapters.append(
                Chapter(
                    id=child["id"],
                    category_id=category.id,
                    title=child.get("title") or "",
                    url_slug=child.get("urlSlug"),
                    poem_count=chapter_count,
                )
            )

        return category.model_copy(update={"poem_count": poem_count, "chapters": chapters})

    async def get_category_poems(self, poet_id: int, category_id: int) -> list[Poem]:
        path = f"/cat/{category_id}"
        data = await self._get_json(path)
        try:
            poet_name = (first_or_none(data.get("poet")) or {}).get("name") or None
            cat = data["cat"]
            category_title = cat.get("title")
            poems = _poems_from_listing(
                cat,
                poet_id=poet_id,
                poet_name=poet_name,
                category_id=category_id,
                category_title=category_title,
            )
            children = as_list(cat.get("children"))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise self._decode_error(path, exc) from exc

        for child in children:
            chapter_path = f"/cat/{child.get('id')}"
            try:
                chapter_data = await self._get_json(chapter_path)
                poems.extend(
                    _poems_from_listing(
                        chapter_data["cat"],
                        poet_id=poet_id,
                        poet_name=poet_name,
                        category_id=category_id,
                        category_title=category_title,
                        chapter_id=child["id"],
                        chapter_title=child.get("title"),
                    )
                )
            except RemoteArchiveError as exc:
                self._logger.warning(
                    "chapter_poems_failed",
                    category_id=category_id,
                    chapter_id=child.get("id"),
                    error=str(exc),
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._logger.warning(
                    "chapter_poems_failed",
                    category_id=category_id,
                    chapter_id=child.get("id"),
                    error=str(self._decode_error(chapter_path, exc)),
                )

        return poems

    async def get_chapter(
        self,
        poet_id: int,
        category_id: int,
        chapter_id: int,
    ) -> ChapterPage:
        path = f"/cat/{chapter_id}"
        data = await self._get_json(path)
        try:
            poet_name = (first_or_none(data.get("poet")) or {}).get("name") or None
            cat = data["cat"]
            title = cat.get("title") or ""
            poems = _poems_from_listing(
                cat,
                poet_id=poet_id,
                poet_name=poet_name,
                category_id=category_id,
                category_title=None,
                chapter_id=chapter_id,
                chapter_title=title,
            )
            chapter = Chapter(
                id=chapter_id,
                category_id=category_id,
                title=title,
                url_slug=cat.get("urlSlug"),
                poem_count=len(poems),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise self._decode_error(path, exc) from exc

        return ChapterPage(chapter=chapter, poems=poems)

    async def get_poem(self, poem_id: int) -> Poem:
        path = f"/poem/{poem_id}"
        data = await self._get_json(path)
        try:
            category = first_or_none(data.get("category")) or {}
            poet = first_or_none(category.get("poet")) or {}
            cat = first_or_none(category.get("cat")) or {}
            return Poem(
                id=data.get("id", poem_id),
                poet_id=poet["id"],
                category_id=cat.get("id"),
                title=data.get("title") or "",
                verses=_verses(data.get("verses")),
                poet_name=poet.get("name"),
                category_title=cat.get("title"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise self._decode_error(path, exc) from exc
