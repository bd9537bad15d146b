"""Ganjeh domain models — re-exports all public model classes.

The models are organized across two submodules by domain concern:
    - poetry.py   — Archive entities (Poet, Category, Chapter, Poem) and
                    page/report aggregates built from them
    - search.py   — Search result projections and the SearchResults envelope

If you add a new model class, remember to add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.poetry import (
    Category,
    Chapter,
    ChapterPage,
    DataSource,
    ImportSummary,
    Poem,
    Poet,
    PoetPage,
    PoetStoreStats,
    Resolved,
    StoreStats,
)
from src.models.search import (
    CategorySearchResult,
    PagedResult,
    PoemSearchResult,
    PoetSearchResult,
    SearchResults,
    SearchType,
)

__all__ = [
    "Category",
    "CategorySearchResult",
    "Chapter",
    "ChapterPage",
    "DataSource",
    "ImportSummary",
    "PagedResult",
    "Poem",
    "PoemSearchResult",
    "Poet",
    "PoetPage",
    "PoetSearchResult",
    "PoetStoreStats",
    "Resolved",
    "SearchResults",
    "SearchType",
    "StoreStats",
]
