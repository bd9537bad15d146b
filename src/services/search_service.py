"""Unified Search Engine -- one search API over the Local Store and the Remote Archive.

Architecture overview for junior developers
--------------------------------------------
  POETS / CATEGORIES:
    Local Store only.  The Remote Archive has no full-text endpoint, so
    poets that are not mirrored simply cannot be found by name here.

  POEMS WITHOUT A POET FILTER:
    Local Store only, across every mirrored poet.  Scanning the Remote
    Archive without a poet scope would mean crawling the whole archive.

  POEMS OF ONE POET:
    - mirrored poet -> Local Store ``search_poems(poet_id=...)``
    - otherwise     -> FALLBACK SCAN against the Remote Archive:
        1. fetch the poet's category list (no per-category counts)
        2. walk at most ``fallback_max_categories`` categories in order,
           fetching each category's poems and filtering in memory
        3. stop early once ``2 * (offset + limit)`` matches are collected
        4. stable-sort title matches above verse-only matches
        5. slice the requested page out of the sorted matches

    Because of step 3 the reported ``total_poems`` for such a poet is the
    number of matches found *before the scan stopped*, not a true total.
    One category failing is logged and skipped.

Local Store failures fail closed per section: the failing section is left
out of the response and the error is logged, other sections still return.
"""

from __future__ import annotations

import asyncio
from typing import Any

from src.interfaces.local_store_provider import ILocalStoreProvider
from src.interfaces.remote_archive_provider import IRemoteArchiveProvider
from src.models.poetry import Poem
from src.models.search import (
    PoemSearchResult,
    PoetSearchResult,
    SearchResults,
    SearchType,
)
from src.services.hybrid_resolver import HybridResolver
from src.utils.concurrency import windowed
from src.utils.errors import (
    ConfigurationError,
    LocalStoreError,
    QueryValidationError,
    RemoteArchiveError,
)
from src.utils.logging import get_logger

QUERY_TOO_SHORT_MESSAGE = "Query too short"

_DEFAULT_FALLBACK_MAX_CATEGORIES = 20
_DEFAULT_SCAN_CONCURRENCY = 1
_DEFAULT_MIN_QUERY_LENGTH = 2
_DEFAULT_MAX_LIMIT = 100
# Matches to collect before the scan stops, as a multiple of offset + limit.
_EARLY_EXIT_FACTOR = 2


def poem_matches(poem: Poem, query_lower: str, words: list[str]) -> bool:
    """The in-memory predicate used by the fallback scan.

    A poem matches when its title contains the query, or its joined verse
    text contains the query as a phrase, or (multi-word query) every word
    appears somewhere in the verse text, or (single-word query) that word
    appears in the verse text.  Comparison is ``str.lower`` only.
    """
    if query_lower in poem.title.lower():
        return True
    if not poem.verses:
        return False
    verses_text = poem.verses_text.lower()
    if query_lower in verses_text:
        return True
    if len(words) > 1 and all(word in verses_text for word in words):
        return True
    if len(words) == 1 and words[0] in verses_text:
        return True
    return False


class SearchService:
    """Searches poets, categories and poems across both tiers.

    Parameters
    ----------
    local:
        The Local Store; ``None`` means search is not configured and every
        call raises :class:`ConfigurationError`.
    remote:
        The Remote Archive, used only by the per-poet fallback scan.
    resolver:
        Supplies the ``is_local`` routing probe (same timeout and failure
        handling as page lookups).
    fallback_max_categories:
        Upper bound on categories visited by one fallback scan.
    fallback_scan_concurrency:
        Categories fetched in parallel per window; ``1`` is sequential.
    """

    def __init__(
        self,
        local: ILocalStoreProvider | None,
        remote: IRemoteArchiveProvider,
        resolver: HybridResolver,
        fallback_max_categories: int = _DEFAULT_FALLBACK_MAX_CATEGORIES,
        fallback_scan_concurrency: int = _DEFAULT_SCAN_CONCURRENCY,
        min_query_length: int = _DEFAULT_MIN_QUERY_LENGTH,
        max_limit: int = _DEFAULT_MAX_LIMIT,
    ) -> None:
        self._local = local
        self._remote = remote
        self._resolver = resolver
        self._fallback_max_categories = fallback_max_categories
        self._scan_concurrency = max(1, fallback_scan_concurrency)
        self._min_query_length = min_query_length
        self._max_limit = max_limit
        self._logger = get_logger(__name__)

    @property
    def configured(self) -> bool:
        return self._local is not None

    def _validate(
        self,
        search_type: str | SearchType,
        limit: int,
        offset: int,
        poet_id: int | None,
    ) -> SearchType:
        try:
            kind = SearchType(search_type)
        except ValueError as exc:
            allowed = ", ".join(t.value for t in SearchType)
            raise QueryValidationError(
                f"Unknown search type {search_type!r}; expected one of: {allowed}"
            ) from exc
        if not 1 <= limit <= self._max_limit:
            raise QueryValidationError(f"limit must be between 1 and {self._max_limit}")
        if offset < 0:
            raise QueryValidationError("offset must be >= 0")
        if poet_id is not None and poet_id < 1:
            raise QueryValidationError("poet_id must be a positive integer")
        return kind

    async def search(
        self,
        query: str | None,
        search_type: str | SearchType = SearchType.ALL,
        limit: int = 20,
        offset: int = 0,
        poet_id: int | None = None,
        with_count: bool = False,
    ) -> SearchResults:
        """Run a unified search.

        Parameters
        ----------
        query:
            Raw user query; surrounding whitespace is ignored.
        search_type:
            ``poets``, ``categories``, ``poems`` or ``all``.
        limit, offset:
            Page window, applied per section.
        poet_id:
            Restricts poem search to one poet (enables the fallback scan
            for poets that are not mirrored).
        with_count:
            Also report totals (exact for Local Store sections).

        Returns
        -------
        SearchResults
            Sections that were not requested, or whose source failed, are
            ``None``.

        Raises
        ------
        ConfigurationError
            No Local Store is configured.
        QueryValidationError
            Unknown type, or limit/offset/poet_id out of range.
        """
        if self._local is None:
            raise ConfigurationError(
                "Search service not configured: no local store is available"
            )

        clean_query = (query or "").strip()
        if len(clean_query) < self._min_query_length:
            return SearchResults(
                poets=[], categories=[], poems=[], message=QUERY_TOO_SHORT_MESSAGE
            )

        kind = self._validate(search_type, limit, offset, poet_id)
        results: dict[str, Any] = {}

        if kind in (SearchType.ALL, SearchType.POETS):
            await self._search_poets(results, clean_query, limit, offset, with_count)

        if kind in (SearchType.ALL, SearchType.CATEGORIES):
            await self._search_categories(results, clean_query, limit, offset, with_count)

        if kind in (SearchType.ALL, SearchType.POEMS):
            if poet_id is not None and not await self._resolver.is_local(poet_id):
                poems, total = await self._fallback_scan(poet_id, clean_query, limit, offset)
                results["poems"] = poems
                if with_count:
                    results["total_poems"] = total
            else:
                await self._search_local_poems(
                    results, clean_query, poet_id, limit, offset, with_count
                )

        self._logger.info(
            "search_completed",
            query=clean_query,
            type=kind.value,
            poet_id=poet_id,
            poets=len(results.get("poets") or []),
            categories=len(results.get("categories") or []),
            poems=len(results.get("poems") or []),
        )
        return SearchResults(**results)

    # ------------------------------------------------------------------
    # Local Store sections
    # ------------------------------------------------------------------

    async def _search_poets(
        self, results: dict[str, Any], query: str, limit: int, offset: int, with_count: bool
    ) -> None:
        try:
            page = await self._local.search_poets(
                query, limit=limit, offset=offset, with_count=with_count
            )
        except LocalStoreError as exc:
            self._logger.error("search_poets_failed", query=query, error=str(exc))
            return
        results["poets"] = [PoetSearchResult.from_poet(p) for p in page.items]
        if with_count and page.total is not None:
            results["total_poets"] = page.total

    async def _search_categories(
        self, results: dict[str, Any], query: str, limit: int, offset: int, with_count: bool
    ) -> None:
        try:
            page = await self._local.search_categories(
                query, limit=limit, offset=offset, with_count=with_count
            )
        except LocalStoreError as exc:
            self._logger.error("search_categories_failed", query=query, error=str(exc))
            return
        results["categories"] = list(page.items)
        if with_count and page.total is not None:
            results["total_categories"] = page.total

    async def _search_local_poems(
        self,
        results: dict[str, Any],
        query: str,
        poet_id: int | None,
        limit: int,
        offset: int,
        with_count: bool,
    ) -> None:
        try:
            page = await self._local.search_poems(
                query, poet_id=poet_id, limit=limit, offset=offset, with_count=with_count
            )
        except LocalStoreError as exc:
            self._logger.error(
                "search_poems_failed", query=query, poet_id=poet_id, error=str(exc)
            )
            return
        results["poems"] = [PoemSearchResult.from_poem(p) for p in page.items]
        if with_count and page.total is not None:
            results["total_poems"] = page.total

    # ------------------------------------------------------------------
    # Remote fallback scan
    # ------------------------------------------------------------------

    async def _fallback_scan(
        self,
        poet_id: int,
        query: str,
        limit: int,
        offset: int,
    ) -> tuple[list[PoemSearchResult], int]:
        """Scan a non-mirrored poet's categories on the Remote Archive.

        Returns the requested page of matches and the number of matches
        collected before the scan stopped.
        """
        query_lower = query.lower()
        words = [w for w in query_lower.split() if w]

        try:
            poet_page = await self._remote.get_poet(poet_id, include_counts=False)
        except RemoteArchiveError as exc:
            self._logger.error(
                "fallback_scan_poet_failed", poet_id=poet_id, status=exc.status, error=str(exc)
            )
            return [], 0

        categories = poet_page.categories[: self._fallback_max_categories]
        target = (offset + limit) * _EARLY_EXIT_FACTOR
        matches: list[PoemSearchResult] = []
        scanned = 0

        for window in windowed(categories, self._scan_concurrency):
            outcomes = await asyncio.gather(
                *(self._remote.get_category_poems(poet_id, c.id) for c in window),
                return_exceptions=True,
            )
            for category, outcome in zip(window, outcomes):
                scanned += 1
                if isinstance(outcome, Exception):
                    self._logger.warning(
                        "fallback_scan_category_failed",
                        poet_id=poet_id,
                        category_id=category.id,
                        error=str(outcome),
                    )
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                for poem in outcome:
                    if poem_matches(poem, query_lower, words):
                        result = PoemSearchResult.from_poem(poem)
                        matches.append(
                            result.model_copy(
                                update={
                                    "poet_name": poem.poet_name or poet_page.poet.name,
                                    "category_title": poem.category_title or category.title,
                                }
                            )
                        )
            if len(matches) >= target:
                break

        # Stable: ties keep scan order.
        matches.sort(key=lambda r: query_lower not in r.title.lower())

        self._logger.info(
            "fallback_scan_completed",
            poet_id=poet_id,
            categories_scanned=scanned,
            categories_available=len(poet_page.categories),
            matches=len(matches),
        )
        return matches[offset:offset + limit], len(matches)
