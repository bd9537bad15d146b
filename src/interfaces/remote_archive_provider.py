"""Abstract base class for the Remote Archive (authoritative, slow, rate-limited).

Defines the read contract for the complete poetry archive.  The concrete
adapter talks to the Ganjoor REST API; tests inject fakes.  Implementations
make a single HTTP round trip per primitive read and never retry -- retry
policy belongs to the callers (Hybrid Resolver, Import Pipeline).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.poetry import ChapterPage, Poem, Poet, PoetPage


class IRemoteArchiveProvider(ABC):
    """Contract for the authoritative poetry archive.

    Every method raises :class:`~src.utils.errors.RemoteArchiveError` on a
    non-2xx response (``status`` set) or a transport/decode failure
    (``status=None``).
    """

    @abstractmethod
    async def get_poets(self) -> list[Poet]:
        """Return every poet in the archive, in archive order."""

    @abstractmethod
    async def get_poet(self, poet_id: int, *, include_counts: bool = True) -> PoetPage:
        """Return a poet with its top-level categories.

        Parameters
        ----------
        poet_id:
            Archive poet id.
        include_counts:
            When ``True``, each category is enriched with its poem count and
            chapter list (one extra request per category and chapter).
            When ``False``, categories carry ``poem_count=0`` and no chapters.
        """

    @abstractmethod
    async def get_category_poems(self, poet_id: int, category_id: int) -> list[Poem]:
        """Return the poems of a category, followed by the poems of its chapters."""

    @abstractmethod
    async def get_chapter(
        self,
        poet_id: int,
        category_id: int,
        chapter_id: int,
    ) -> ChapterPage:
        """Return a chapter of *category_id* with its poems."""

    @abstractmethod
    async def get_poem(self, poem_id: int) -> Poem:
        """Return a poem with all its non-empty verses, in order."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
