"""Pydantic response schemas for the Ganjeh API.

Defines the public contract for the REST endpoints: unified search, the
browse pages (poet list, poet, category, chapter, poem), health, and the
error body.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# These Pydantic models define the *shape* of every HTTP response body.
# They are deliberately separate from ``src/models``: the domain models
# use snake_case and are shared by the resolver, search engine and import
# pipeline, while the JSON contract uses camelCase keys.
#
#   1. ``_CamelModel`` sets ``alias_generator=to_camel`` so a field named
#      ``poet_name`` is written as ``poetName``.
#   2. ``populate_by_name=True`` lets us build a schema straight from a
#      domain model's ``model_dump()`` (snake_case keys).
#   3. FastAPI serializes ``response_model`` objects with ``by_alias=True``
#      so the camelCase names are what clients see.
#
# Convention: top-level response schemas end with "Response"; nested
# shapes end with "Out" (full entities) or "Hit" (search result rows).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.poetry import DataSource
from src.models.search import SearchResults


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class PoetOut(_CamelModel):
    id: int
    name: str
    slug: str = ""
    description: str | None = None
    birth_year: int | None = None
    death_year: int | None = None


class ChapterOut(_CamelModel):
    id: int
    category_id: int
    title: str
    url_slug: str | None = None
    poem_count: int = 0


class CategoryOut(_CamelModel):
    id: int
    poet_id: int
    parent_id: int | None = None
    title: str
    url_slug: str | None = None
    poem_count: int = 0
    description: str | None = None
    chapters: list[ChapterOut] = Field(default_factory=list)


class PoemOut(_CamelModel):
    id: int
    poet_id: int
    category_id: int | None = None
    chapter_id: int | None = None
    title: str
    verses: list[str] = Field(default_factory=list)
    poet_name: str | None = None
    category_title: str | None = None
    chapter_title: str | None = None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class PoetHit(_CamelModel):
    id: int
    name: str
    slug: str = ""
    description: str | None = None
    birth_year: int | None = None
    death_year: int | None = None


class CategoryHit(_CamelModel):
    id: int
    title: str
    url_slug: str | None = None
    poet_id: int
    poet_name: str | None = None
    poet_slug: str | None = None
    poem_count: int = 0


class PoemHit(_CamelModel):
    id: int
    title: str
    verses: list[str] = Field(default_factory=list)
    poet_id: int
    poet_name: str | None = None
    category_id: int | None = None
    category_title: str | None = None
    chapter_id: int | None = None
    chapter_title: str | None = None


class SearchResponse(_CamelModel):
    """Unified search response.

    Every key is optional: sections that were not requested (or whose
    source failed) and totals that were not asked for are left out of the
    JSON entirely rather than written as ``null``.
    """

    poets: list[PoetHit] | None = None
    categories: list[CategoryHit] | None = None
    poems: list[PoemHit] | None = None
    total_poets: int | None = None
    total_categories: int | None = None
    total_poems: int | None = None
    message: str | None = None

    @classmethod
    def payload(cls, results: SearchResults) -> dict[str, Any]:
        """Return the camelCase JSON body for *results*, absent keys omitted.

        Only top-level keys that carry a value are set on the schema, so
        ``exclude_unset`` drops the rest while nested rows keep their
        ``null`` fields.
        """
        present = {k: v for k, v in results.model_dump().items() if v is not None}
        schema = cls.model_validate(present)
        return schema.model_dump(by_alias=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------


class _SourcedResponse(_CamelModel):
    """Base for browse responses: which tier served the data."""

    source: DataSource
    fallback: bool = False


class PoetListResponse(_SourcedResponse):
    poets: list[PoetOut]


class PoetPageResponse(_SourcedResponse):
    poet: PoetOut
    categories: list[CategoryOut]


class CategoryPoemsResponse(_SourcedResponse):
    poet_id: int
    category_id: int
    poems: list[PoemOut]


class ChapterPageResponse(_SourcedResponse):
    chapter: ChapterOut
    category_title: str | None = None
    poems: list[PoemOut]


class PoemResponse(_SourcedResponse):
    poem: PoemOut


# ---------------------------------------------------------------------------
# Health / errors
# ---------------------------------------------------------------------------


class HealthResponse(_CamelModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    message: str | None = None
