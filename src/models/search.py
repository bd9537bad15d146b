"""Search request and result models.

Search results are ephemeral projections of the core entities: they carry
just enough to render a result row and link to the full page.  The
``SearchResults`` envelope leaves a section as ``None`` when that section
was not requested (or its source failed), which the API layer turns into
an omitted JSON key.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from src.models.poetry import Category, Poem, Poet

_T = TypeVar("_T")


class SearchType(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    POETS = "poets"
    CATEGORIES = "categories"
    POEMS = "poems"
    ALL = "all"


class PagedResult(BaseModel, Generic[_T]):
    """One page of items plus the exact total when it was requested."""

    model_config = ConfigDict(frozen=True)

    items: list[_T] = Field(default_factory=list)
    total: int | None = None


class PoetSearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str = ""
    description: str | None = None
    birth_year: int | None = None
    death_year: int | None = None

    @classmethod
    def from_poet(cls, poet: Poet) -> PoetSearchResult:
        return cls(
            id=poet.id,
            name=poet.name,
            slug=poet.slug,
            description=poet.description,
            birth_year=poet.birth_year,
            death_year=poet.death_year,
        )


class CategorySearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url_slug: str | None = None
    poet_id: int
    poet_name: str | None = None
    poet_slug: str | None = None
    poem_count: int = 0

    @classmethod
    def from_category(
        cls,
        category: Category,
        poet_name: str | None = None,
        poet_slug: str | None = None,
    ) -> CategorySearchResult:
        return cls(
            id=category.id,
            title=category.title,
            url_slug=category.url_slug,
            poet_id=category.poet_id,
            poet_name=poet_name,
            poet_slug=poet_slug,
            poem_count=category.poem_count,
        )


class PoemSearchResult(BaseModel):
    """A matching poem with its verses and denormalized context."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    verses: list[str] = Field(default_factory=list)
    poet_id: int
    poet_name: str | None = None
    category_id: int | None = None
    category_title: str | None = None
    chapter_id: int | None = None
    chapter_title: str | None = None

    @classmethod
    def from_poem(cls, poem: Poem) -> PoemSearchResult:
        return cls(
            id=poem.id,
            title=poem.title,
            verses=list(poem.verses),
            poet_id=poem.poet_id,
            poet_name=poem.poet_name,
            category_id=poem.category_id,
            category_title=poem.category_title,
            chapter_id=poem.chapter_id,
            chapter_title=poem.chapter_title,
        )


class SearchResults(BaseModel):
    """Envelope returned by the Unified Search Engine.

    ``total_*`` are exact counts for Local Store sections when counting was
    requested; ``total_poems`` for a fallback scan is the approximate
    number of matches found before the scan stopped.
    """

    model_config = ConfigDict(frozen=True)

    poets: list[PoetSearchResult] | None = None
    categories: list[CategorySearchResult] | None = None
    poems: list[PoemSearchResult] | None = None
    total_poets: int | None = None
    total_categories: int | None = None
    total_poems: int | None = None
    message: str | None = None
