"""SQLite-backed Local Store.

Persists the imported subset of the archive in a local SQLite database at
``data/ganjeh.db``.  Uses ``aiosqlite`` for async I/O, one connection per
call.

Every searchable text column has a ``search_*`` shadow column holding the
output of :func:`~src.utils.text_normalizer.normalize_search_text`, written
at upsert time.  Queries are normalized the same way and matched with an
escaped ``LIKE``, which gives case- and diacritic-insensitive substring
search without an FTS extension.

The store can be opened in two modes:

- privileged (``read_only=False``) -- used by the import CLI; creates the
  schema and accepts writes.
- restricted (``read_only=True``) -- used by the web process; opened with a
  ``mode=ro`` URI so SQLite itself refuses writes.

Any driver failure is raised as :class:`LocalStoreError` with the original
exception attached.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite
import structlog

from src.interfaces.local_store_provider import ILocalStoreProvider
from src.models.poetry import (
    Category,
    Chapter,
    ChapterPage,
    Poem,
    Poet,
    PoetPage,
    PoetStoreStats,
    StoreStats,
)
from src.models.search import CategorySearchResult, PagedResult
from src.utils.errors import LocalStoreError
from src.utils.text_normalizer import like_pattern, normalize_search_text

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ganjeh.db")
_PROVIDER_NAME = "sqlite_local_store"

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS poets (
    id                  INTEGER PRIMARY KEY,
    name                TEXT    NOT NULL,
    slug                TEXT    NOT NULL DEFAULT '',
    description         TEXT,
    birth_year          INTEGER,
    death_year          INTEGER,
    search_name         TEXT    NOT NULL DEFAULT '',
    search_description  TEXT    NOT NULL DEFAULT ''
);
""",
    """\
CREATE TABLE IF NOT EXISTS categories (
    id            INTEGER PRIMARY KEY,
    poet_id       INTEGER NOT NULL REFERENCES poets(id),
    parent_id     INTEGER,
    title         TEXT    NOT NULL,
    url_slug      TEXT,
    poem_count    INTEGER NOT NULL DEFAULT 0,
    search_title  TEXT    NOT NULL DEFAULT ''
);
""",
    """\
CREATE TABLE IF NOT EXISTS poems (
    id             INTEGER PRIMARY KEY,
    poet_id        INTEGER NOT NULL REFERENCES poets(id),
    category_id    INTEGER,
    chapter_id     INTEGER,
    title          TEXT    NOT NULL,
    verses_text    TEXT    NOT NULL DEFAULT '',
    verses_json    TEXT    NOT NULL DEFAULT '[]',
    search_title   TEXT    NOT NULL DEFAULT '',
    search_verses  TEXT    NOT NULL DEFAULT ''
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_categories_poet ON categories(poet_id);",
    "CREATE INDEX IF NOT EXISTS idx_categories_parent ON categories(parent_id);",
    "CREATE INDEX IF NOT EXISTS idx_poems_poet ON poems(poet_id);",
    "CREATE INDEX IF NOT EXISTS idx_poems_category ON poems(category_id);",
    "CREATE INDEX IF NOT EXISTS idx_poems_chapter ON poems(chapter_id);",
]

_UPSERT_POET_SQL = """\
INSERT INTO poets (id, name, slug, description, birth_year, death_year,
                   search_name, search_description)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET name               = excluded.name,
              slug               = excluded.slug,
              description        = excluded.description,
              birth_year         = excluded.birth_year,
              death_year         = excluded.death_year,
              search_name        = excluded.search_name,
              search_description = excluded.search_description;
"""

_UPSERT_CATEGORY_SQL = """\
INSERT INTO categories (id, poet_id, parent_id, title, url_slug, poem_count, search_title)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET poet_id      = excluded.poet_id,
              parent_id    = excluded.parent_id,
              title        = excluded.title,
              url_slug     = excluded.url_slug,
              poem_count   = excluded.poem_count,
              search_title = excluded.search_title;
"""

_UPSERT_POEM_SQL = """\
INSERT INTO poems (id, poet_id, category_id, chapter_id, title, verses_text,
                   verses_json, search_title, search_verses)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET poet_id       = excluded.poet_id,
              category_id   = excluded.category_id,
              chapter_id    = excluded.chapter_id,
              title         = excluded.title,
              verses_text   = excluded.verses_text,
              verses_json   = excluded.verses_json,
              search_title  = excluded.search_title,
              search_verses = excluded.search_verses;
"""

# Poem rows joined with their denormalized context.
_POEM_SELECT = """\
SELECT p.id, p.poet_id, p.category_id, p.chapter_id, p.title, p.verses_json,
       pt.name AS poet_name, c.title AS category_title, ch.title AS chapter_title
FROM poems p
LEFT JOIN poets pt ON pt.id = p.poet_id
LEFT JOIN categories c ON c.id = p.category_id
LEFT JOIN categories ch ON ch.id = p.chapter_id
"""

_POET_COLUMNS = "id, name, slug, description, birth_year, death_year"


def _poet_from_row(row: aiosqlite.Row) -> Poet:
    return Poet(
        id=row["id"],
        name=row["name"],
        slug=row["slug"] or "",
        description=row["description"],
        birth_year=row["birth_year"],
        death_year=row["death_year"],
    )


def _poem_from_row(row: aiosqlite.Row) -> Poem:
    return Poem(
        id=row["id"],
        poet_id=row["poet_id"],
        category_id=row["category_id"],
        chapter_id=row["chapter_id"],
        title=row["title"],
        verses=json.loads(row["verses_json"] or "[]"),
        poet_name=row["poet_name"],
        category_title=row["category_title"],
        chapter_title=row["chapter_title"],
    )


def _page_clause(limit: int, offset: int) -> tuple[str, tuple[int, int]]:
    return " LIMIT ? OFFSET ?", (limit, offset)


class SQLiteLocalStore(ILocalStoreProvider):
    """aiosqlite-backed Local Store.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.
    read_only:
        Open every connection with ``mode=ro``; write methods then raise
        :class:`LocalStoreError` without touching the file.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH, read_only: bool = False) -> None:
        self._db_path = Path(db_path)
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection and translate driver errors into LocalStoreError."""
        if self._read_only:
            database = f"{self._db_path.resolve().as_uri()}?mode=ro"
            kwargs: dict[str, Any] = {"uri": True}
        else:
            database = str(self._db_path)
            kwargs = {}
        try:
            async with aiosqlite.connect(database, **kwargs) as db:
                db.row_factory = aiosqlite.Row
                if not self._read_only:
                    await db.execute("PRAGMA foreign_keys = ON")
                yield db
        except (aiosqlite.Error, OSError) as exc:
            logger.warning(
                "local_store_query_failed",
                operation=operation,
                path=str(self._db_path),
                error=str(exc),
            )
            raise LocalStoreError(
                f"{operation} failed: {exc}",
                cause=exc,
                provider_name=_PROVIDER_NAME,
            ) from exc

    def _require_writable(self, operation: str) -> None:
        if self._read_only:
            raise LocalStoreError(
                f"{operation} refused: local store is open read-only",
                provider_name=_PROVIDER_NAME,
            )

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._require_writable("initialize")
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect("initialize") as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("local_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def has_poet(self, poet_id: int) -> bool:
        async with self._connect("has_poet") as db:
            cursor = await db.execute("SELECT 1 FROM poets WHERE id = ? LIMIT 1", (poet_id,))
            row = await cursor.fetchone()
        return row is not None

    async def list_poets(self) -> list[Poet]:
        async with self._connect("list_poets") as db:
            cursor = await db.execute(f"SELECT {_POET_COLUMNS} FROM poets ORDER BY id")
            rows = await cursor.fetchall()
        return [_poet_from_row(r) for r in rows]

    async def get_poet(self, poet_id: int) -> PoetPage | None:
        """Return the poet and its imported top-level categories.

        Top-level means children of the poet's root category.  Categories
        with no imported poems are hidden.
        """
        async with self._connect("get_poet") as db:
            cursor = await db.execute(
                f"SELECT {_POET_COLUMNS} FROM poets WHERE id = ?", (poet_id,)
            )
            poet_row = await cursor.fetchone()
            if poet_row is None:
                return None

            cursor = await db.execute(
                "SELECT id, poet_id, parent_id, title, url_slug, poem_count "
                "FROM categories "
                "WHERE poet_id = ? AND poem_count > 0 AND parent_id IN "
                "(SELECT id FROM categories WHERE poet_id = ? AND parent_id IS NULL) "
                "ORDER BY id",
                (poet_id, poet_id),
            )
            category_rows = await cursor.fetchall()

            chapter_rows: list[aiosqlite.Row] = []
            if category_rows:
                placeholders = ",".join("?" for _ in category_rows)
                cursor = await db.execute(
                    "SELECT id, parent_id, title, url_slug, poem_count FROM categories "
                    f"WHERE parent_id IN ({placeholders}) ORDER BY id",
                    tuple(r["id"] for r in category_rows),
                )
                chapter_rows = list(await cursor.fetchall())

        chapters_by_parent: dict[int, list[Chapter]] = {}
        for row in chapter_rows:
            chapters_by_parent.setdefault(row["parent_id"], []).append(
                Chapter(
                    id=row["id"],
                    category_id=row["parent_id"],
                    title=row["title"],
                    url_slug=row["url_slug"],
                    poem_count=row["poem_count"],
                )
            )

        categories = [
            Category(
                id=row["id"],
                poet_id=row["poet_id"],
                parent_id=row["parent_id"],
                title=row["title"],
                url_slug=row["url_slug"],
                poem_count=row["poem_count"],
                chapters=chapters_by_parent.get(row["id"], []),
            )
            for row in category_rows
        ]
        return PoetPage(poet=_poet_from_row(poet_row), categories=categories)

    async def get_category_poems(self, poet_id: int, category_id: int) -> list[Poem]:
        async with self._connect("get_category_poems") as db:
            cursor = await db.execute(
                f"{_POEM_SELECT} WHERE p.poet_id = ? AND p.category_id = ? ORDER BY p.id",
                (poet_id, category_id),
            )
            rows = await cursor.fetchall()
        return [_poem_from_row(r) for r in rows]

    async def get_chapter(
        self,
        poet_id: int,
        category_id: int,
        chapter_id: int,
    ) -> ChapterPage | None:
        async with self._connect("get_chapter") as db:
            cursor = await db.execute(
                "SELECT ch.id, ch.parent_id, ch.title, ch.url_slug, ch.poem_count, "
                "c.title AS category_title "
                "FROM categories ch LEFT JOIN categories c ON c.id = ch.parent_id "
                "WHERE ch.id = ? AND ch.parent_id = ? AND ch.poet_id = ?",
                (chapter_id, category_id, poet_id),
            )
            chapter_row = await cursor.fetchone()
            if chapter_row is None:
                return None
            cursor = await db.execute(
                f"{_POEM_SELECT} WHERE p.poet_id = ? AND p.chapter_id = ? ORDER BY p.id",
                (poet_id, chapter_id),
            )
            poem_rows = await cursor.fetchall()

        chapter = Chapter(
            id=chapter_row["id"],
            category_id=chapter_row["parent_id"],
            title=chapter_row["title"],
            url_slug=chapter_row["url_slug"],
            poem_count=chapter_row["poem_count"],
        )
        return ChapterPage(
            chapter=chapter,
            category_title=chapter_row["category_title"],
            poems=[_poem_from_row(r) for r in poem_rows],
        )

    async def get_poem(self, poem_id: int) -> Poem | None:
        async with self._connect("get_poem") as db:
            cursor = await db.execute(f"{_POEM_SELECT} WHERE p.id = ?", (poem_id,))
            row = await cursor.fetchone()
        return _poem_from_row(row) if row is not None else None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_poets(
        self,
        query: str,
        *,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[Poet]:
        pattern = like_pattern(query)
        where = "WHERE search_name LIKE ? ESCAPE '\\' OR search_description LIKE ? ESCAPE '\\'"
        params: tuple[Any, ...] = (pattern, pattern)
        page_sql, page_params = _page_clause(limit, offset)

        async with self._connect("search_poets") as db:
            cursor = await db.execute(
                f"SELECT {_POET_COLUMNS} FROM poets {where} ORDER BY id DESC{page_sql}",
                params + page_params,
            )
            rows = await cursor.fetchall()
            total = None
            if with_count:
                cursor = await db.execute(f"SELECT COUNT(*) FROM poets {where}", params)
                total = (await cursor.fetchone())[0]

        return PagedResult[Poet](items=[_poet_from_row(r) for r in rows], total=total)

    async def search_categories(
        self,
        query: str,
        *,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[CategorySearchResult]:
        pattern = like_pattern(query)
        where = "WHERE c.search_title LIKE ? ESCAPE '\\'"
        page_sql, page_params = _page_clause(limit, offset)

        async with self._connect("search_categories") as db:
            cursor = await db.execute(
                "SELECT c.id, c.title, c.url_slug, c.poet_id, c.poem_count, "
                "pt.name AS poet_name, pt.slug AS poet_slug "
                f"FROM categories c LEFT JOIN poets pt ON pt.id = c.poet_id {where} "
                f"ORDER BY c.id DESC{page_sql}",
                (pattern,) + page_params,
            )
            rows = await cursor.fetchall()
            total = None
            if with_count:
                cursor = await db.execute(
                    f"SELECT COUNT(*) FROM categories c {where}", (pattern,)
                )
                total = (await cursor.fetchone())[0]

        items = [
            CategorySearchResult(
                id=r["id"],
                title=r["title"],
                url_slug=r["url_slug"],
                poet_id=r["poet_id"],
                poet_name=r["poet_name"],
                poet_slug=r["poet_slug"],
                poem_count=r["poem_count"],
            )
            for r in rows
        ]
        return PagedResult[CategorySearchResult](items=items, total=total)

    async def search_poems(
        self,
        query: str,
        *,
        poet_id: int | None = None,
        limit: int,
        offset: int,
        with_count: bool = False,
    ) -> PagedResult[Poem]:
        pattern = like_pattern(query)
        where = "WHERE (p.search_title LIKE ? ESCAPE '\\' OR p.search_verses LIKE ? ESCAPE '\\')"
        params: tuple[Any, ...] = (pattern, pattern)
        if poet_id is not None:
            where += " AND p.poet_id = ?"
            params += (poet_id,)
        page_sql, page_params = _page_clause(limit, offset)

        async with self._connect("search_poems") as db:
            cursor = await db.execute(
                f"{_POEM_SELECT} {where} ORDER BY p.id DESC{page_sql}",
                params + page_params,
            )
            rows = await cursor.fetchall()
            total = None
            if with_count:
                cursor = await db.execute(f"SELECT COUNT(*) FROM poems p {where}", params)
                total = (await cursor.fetchone())[0]

        return PagedResult[Poem](items=[_poem_from_row(r) for r in rows], total=total)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_poets(self, poets: list[Poet]) -> int:
        self._require_writable("upsert_poets")
        if not poets:
            return 0
        rows = [
            (
                p.id,
                p.name,
                p.slug,
                p.description,
                p.birth_year,
                p.death_year,
                normalize_search_text(p.name),
                normalize_search_text(p.description),
            )
            for p in poets
        ]
        async with self._connect("upsert_poets") as db:
            await db.executemany(_UPSERT_POET_SQL, rows)
            await db.commit()
        return len(rows)

    async def upsert_categories(self, categories: list[Category]) -> int:
        """Upsert categories; each category's ``chapters`` are written as child rows."""
        self._require_writable("upsert_categories")
        rows: list[tuple[Any, ...]] = []
        for category in categories:
            rows.append(
                (
                    category.id,
                    category.poet_id,
                    category.parent_id,
                    category.title,
                    category.url_slug,
                    category.poem_count,
                    normalize_search_text(category.title),
                )
            )
            for chapter in category.chapters:
                rows.append(
                    (
                        chapter.id,
                        category.poet_id,
                        category.id,
                        chapter.title,
                        chapter.url_slug,
                        chapter.poem_count,
                        normalize_search_text(chapter.title),
                    )
                )
        if not rows:
            return 0
        async with self._connect("upsert_categories") as db:
            await db.executemany(_UPSERT_CATEGORY_SQL, rows)
            await db.commit()
        return len(rows)

    async def upsert_poems(self, poems: list[Poem]) -> int:
        self._require_writable("upsert_poems")
        if not poems:
            return 0
        rows = [
            (
                p.id,
                p.poet_id,
                p.category_id,
                p.chapter_id,
                p.title,
                p.verses_text,
                json.dumps(list(p.verses), ensure_ascii=False),
                normalize_search_text(p.title),
                normalize_search_text(p.verses_text),
            )
            for p in poems
        ]
        async with self._connect("upsert_poems") as db:
            await db.executemany(_UPSERT_POEM_SQL, rows)
            await db.commit()
        return len(rows)

    async def set_category_poem_count(self, category_id: int, poem_count: int) -> None:
        self._require_writable("set_category_poem_count")
        async with self._connect("set_category_poem_count") as db:
            await db.execute(
                "UPDATE categories SET poem_count = ? WHERE id = ?",
                (poem_count, category_id),
            )
            await db.commit()

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def get_stats(self) -> StoreStats:
        async with self._connect("get_stats") as db:
            totals: dict[str, int] = {}
            for table in ("poets", "categories", "poems"):
                cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
                totals[table] = (await cursor.fetchone())[0]
            cursor = await db.execute(
                "SELECT pt.id, pt.name, "
                "(SELECT COUNT(*) FROM categories c WHERE c.poet_id = pt.id) AS categories, "
                "(SELECT COUNT(*) FROM poems p WHERE p.poet_id = pt.id) AS poems "
                "FROM poets pt ORDER BY pt.id"
            )
            rows = await cursor.fetchall()

        return StoreStats(
            poets=totals["poets"],
            categories=totals["categories"],
            poems=totals["poems"],
            per_poet=[
                PoetStoreStats(
                    poet_id=r["id"],
                    name=r["name"],
                    categories=r["categories"],
                    poems=r["poems"],
                )
                for r in rows
            ],
        )

    async def clear(self) -> StoreStats:
        self._require_writable("clear")
        before = await self.get_stats()
        async with self._connect("clear") as db:
            # Children first so poet references never dangle.
            await db.execute("DELETE FROM poems")
            await db.execute("DELETE FROM categories")
            await db.execute("DELETE FROM poets")
            await db.commit()
        logger.info(
            "local_store_cleared",
            poets=before.poets,
            categories=before.categories,
            poems=before.poems,
        )
        return before
