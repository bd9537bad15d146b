"""Core domain entities for the Ganjeh poetry archive.

Defines Pydantic v2 models for poets, categories (a poet's books/divans),
chapters (sub-sections of a category) and poems.  All models use frozen
config so an object handed out by one data source can never be mutated by
a caller on its way to another.

The same models are produced by both data sources -- the Remote Archive
client translates Ganjoor JSON into them and the Local Store client builds
them from SQLite rows -- so every consumer (resolver, search engine, API)
is indifferent to where a record came from.

Key relationships:
    - Poet has many Category objects (its top-level books)
    - Category has many Chapter objects (possibly none)
    - Poem belongs to one Poet and optionally one Category and one Chapter
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class DataSource(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Which tier served a resolver result."""

    LOCAL = "local"
    REMOTE = "remote"


class Poet(BaseModel):
    """A poet as listed by the archive.

    ``slug`` is the URL path segment (e.g. ``"hafez"``); birth/death years
    are lunar-Hijri and ``None`` when unknown.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str = ""
    description: str | None = None
    birth_year: int | None = None
    death_year: int | None = None


class Chapter(BaseModel):
    """A sub-section of a category (e.g. one daftar of the Masnavi)."""

    model_config = ConfigDict(frozen=True)

    id: int
    category_id: int
    title: str
    url_slug: str | None = None
    poem_count: int = 0


class Category(BaseModel):
    """A named collection of poems belonging to one poet.

    ``parent_id`` is ``None`` for the poet's root category.  ``chapters``
    holds the category's own children, in archive order.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    poet_id: int
    parent_id: int | None = None
    title: str
    url_slug: str | None = None
    poem_count: int = 0
    description: str | None = None
    chapters: list[Chapter] = Field(default_factory=list)

    @property
    def has_chapters(self) -> bool:
        return bool(self.chapters)


class Poem(BaseModel):
    """A single poem with its ordered verses.

    ``verses`` keeps archive order and duplicates exactly as received;
    ``verses_text`` is the single-space join used for full-text matching.
    The ``*_name``/``*_title`` fields are denormalized context so a poem can
    be rendered without further lookups; any of them may be ``None`` when
    the source did not supply it.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    poet_id: int
    category_id: int | None = None
    chapter_id: int | None = None
    title: str
    verses: list[str] = Field(default_factory=list)
    poet_name: str | None = None
    category_title: str | None = None
    chapter_title: str | None = None

    @property
    def verses_text(self) -> str:
        return " ".join(self.verses)


class PoetPage(BaseModel):
    """A poet together with the categories shown on the poet's page."""

    model_config = ConfigDict(frozen=True)

    poet: Poet
    categories: list[Category] = Field(default_factory=list)


class ChapterPage(BaseModel):
    """A chapter together with its poems, plus the owning category's title."""

    model_config = ConfigDict(frozen=True)

    chapter: Chapter
    category_title: str | None = None
    poems: list[Poem] = Field(default_factory=list)


class PoetStoreStats(BaseModel):
    """Per-poet row counts in the Local Store."""

    model_config = ConfigDict(frozen=True)

    poet_id: int
    name: str
    categories: int = 0
    poems: int = 0


class StoreStats(BaseModel):
    """Row counts of the Local Store, as reported by ``audit`` and ``clear``."""

    model_config = ConfigDict(frozen=True)

    poets: int = 0
    categories: int = 0
    poems: int = 0
    per_poet: list[PoetStoreStats] = Field(default_factory=list)


class ImportSummary(BaseModel):
    """Totals reported at the end of an import run."""

    model_config = ConfigDict(frozen=True)

    poets: int = 0
    categories: int = 0
    poems: int = 0
    poems_full_verses: int = 0
    poems_preview: int = 0
    failures: int = 0
    duration_seconds: float = 0.0


_T = TypeVar("_T")


class Resolved(BaseModel, Generic[_T]):
    """A resolver result tagged with the tier that served it.

    ``fallback`` is ``True`` when the Local Store was consulted for data but
    could not serve it (error, missing row, or an empty truncated mirror)
    and the Remote Archive answered instead.
    """

    model_config = ConfigDict(frozen=True)

    value: _T
    source: DataSource
    fallback: bool = False
