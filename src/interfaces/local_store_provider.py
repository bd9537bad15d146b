"""Abstract base class for the Local Store (fast, partial mirror).

The Local Store holds a pre-imported subset of the archive.  A poet is
either present with its imported categories and poems, or absent entirely.
Implementations wrap every backend failure in
:class:`~src.utils.errors.LocalStoreError`; callers decide whether to fall
back to the Remote Archive.

The contract has two halves:

- **Reads** -- used by the Hybrid Resolver and the Unified Search Engine,
  safe on a read-only connection.
- **Writes / maintenance** -- used only by the Import Pipeline and the
  operator CLI, and require a privileged (read/write) store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.poetry import (
    Category,
    ChapterPage,
    Poem,
    Poet,
    PoetPage,
    StoreStats,
)
from src.models.search import CategorySearchResult, PagedResult


class ILocalStoreProvider(ABC):
    """Contract for the local poetry mirror."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    async def has_poet(self, poet_id: int) -> bool:
        """Return ``True`` if *poet_id* is mirrored locally (primary-key probe)."""

    @abstractmethod
    async def get_poet(self, poet_id: int) -> PoetPage | None:
        """Return the poet with its non-empty top-level categories, or ``None``."""

    @abstractmethod
    async def list_poets(self) -> list[Poet]:
        """Return every mirrored poet ordered by id."""

    @abstractmethod
    async def get_category_poems(self, poet_id: int, category_id: int) -> list[Poem]:
        """Return the poems filed under *category_id* (including its chapters)."""

    @abstractmethod
    async def get_chapter(
        self,
        poet_id: int,
        category_id: int,
        chapter_id: int,
    ) -> ChapterPage | None:
        """Return the chapter with its poems, or ``None`` if not mirrored."""

    @abstractmethod
    async def get_poem(self, poem_id: int) -> Poem | None:
        """Return a poem by id, or ``None`` if not mirrored."""

    @abstractmethod
    async def search_poets(
        self,
        query: str,
        *,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[Poet]:
        """Substring-match poets on name or description, newest id first.

        Parameters
        ----------
        query:
            Raw user query; normalized by the implementation.
        limit, offset:
            Page window applied after ordering.
        with_count:
            When ``True``, ``total`` carries the exact match count.
        """

    @abstractmethod
    async def search_categories(
        self,
        query: str,
        *,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[CategorySearchResult]:
        """Substring-match categories on title, newest id first.

        Results carry the owning poet's name and slug.
        """

    @abstractmethod
    async def search_poems(
        self,
        query: str,
        *,
        poet_id: int | None = None,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[Poem]:
        """Substring-match poems on title or verse text, newest id first.

        ``poet_id`` restricts matches to one poet when given.
        """

    # ------------------------------------------------------------------
    # Writes / maintenance
    # ------------------------------------------------------------------

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist."""

    @abstractmethod
    async def upsert_poets(self, poets: list[Poet]) -> int:
        """Insert or update poets by id; returns rows written."""

    @abstractmethod
    async def upsert_categories(self, categories: list[Category]) -> int:
        """Insert or update categories (and their chapters) by id; returns rows written."""

    @abstractmethod
    async def upsert_poems(self, poems: list[Poem]) -> int:
        """Insert or update poems by id; returns rows written."""

    @abstractmethod
    async def set_category_poem_count(self, category_id: int, poem_count: int) -> None:
        """Record the number of poems imported for a category or chapter."""

    @abstractmethod
    async def get_stats(self) -> StoreStats:
        """Return row counts, overall and per poet."""

    @abstractmethod
    async def clear(self) -> StoreStats:
        """Delete every row (poems, then categories, then poets).

        Returns the counts that were present before deletion.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
