"""Unit tests for SQLiteLocalStore.

Each test uses a temporary SQLite database (see ``local_store`` /
``seeded_store`` in conftest) to ensure isolation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.models.poetry import Category, Poem, Poet
from src.providers.local.sqlite_local_store import SQLiteLocalStore
from src.utils.errors import LocalStoreError
from tests.conftest import GHAZAL_2, HAFEZ, NEY_NAMEH, seed_store


# ═══════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════


class TestReads:

    @pytest.mark.asyncio
    async def test_has_poet(self, seeded_store: SQLiteLocalStore) -> None:
        assert await seeded_store.has_poet(2) is True
        assert await seeded_store.has_poet(999) is False

    @pytest.mark.asyncio
    async def test_list_poets_ordered_by_id(self, seeded_store: SQLiteLocalStore) -> None:
        poets = await seeded_store.list_poets()
        assert [p.id for p in poets] == [2, 5]
        assert poets[0] == HAFEZ

    @pytest.mark.asyncio
    async def test_get_poet_returns_non_empty_top_level_categories(
        self, seeded_store: SQLiteLocalStore
    ) -> None:
        page = await seeded_store.get_poet(2)

        assert page is not None
        assert page.poet.name == "حافظ شیرازی"
        # Root (24) is not listed and the empty category (26) is hidden.
        assert [c.id for c in page.categories] == [25]
        assert page.categories[0].poem_count == 2

    @pytest.mark.asyncio
    async def test_get_poet_includes_chapters(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.get_poet(5)

        assert page is not None
        masnavi = page.categories[0]
        assert masnavi.has_chapters
        assert [(ch.id, ch.title) for ch in masnavi.chapters] == [(102, "دفتر اول")]

    @pytest.mark.asyncio
    async def test_get_poet_unknown(self, seeded_store: SQLiteLocalStore) -> None:
        assert await seeded_store.get_poet(999) is None

    @pytest.mark.asyncio
    async def test_get_category_poems_with_context(self, seeded_store: SQLiteLocalStore) -> None:
        poems = await seeded_store.get_category_poems(2, 25)

        assert [p.id for p in poems] == [2131, 2132]
        assert poems[0].poet_name == "حافظ شیرازی"
        assert poems[0].category_title == "غزلیات"

    @pytest.mark.asyncio
    async def test_get_category_poems_includes_chapter_poems(
        self, seeded_store: SQLiteLocalStore
    ) -> None:
        poems = await seeded_store.get_category_poems(5, 101)

        assert [p.id for p in poems] == [5001]
        assert poems[0].chapter_title == "دفتر اول"

    @pytest.mark.asyncio
    async def test_get_chapter(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.get_chapter(5, 101, 102)

        assert page is not None
        assert page.chapter.title == "دفتر اول"
        assert page.category_title == "مثنوی معنوی"
        assert [p.id for p in page.poems] == [5001]

    @pytest.mark.asyncio
    async def test_get_chapter_wrong_parent(self, seeded_store: SQLiteLocalStore) -> None:
        assert await seeded_store.get_chapter(5, 25, 102) is None

    @pytest.mark.asyncio
    async def test_get_poem_preserves_verses(self, seeded_store: SQLiteLocalStore) -> None:
        poem = await seeded_store.get_poem(2132)

        assert poem is not None
        assert poem.verses == GHAZAL_2.verses

    @pytest.mark.asyncio
    async def test_get_poem_unknown(self, seeded_store: SQLiteLocalStore) -> None:
        assert await seeded_store.get_poem(1) is None


# ═══════════════════════════════════════════════════════════════════════
# Search
# ═══════════════════════════════════════════════════════════════════════


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_poets_folds_arabic_yeh(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.search_poets(
            "مولوي", limit=10, offset=0, with_count=True
        )
        assert [p.id for p in page.items] == [5]
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_search_poets_matches_description(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.search_poets("بلخی", limit=10, offset=0)
        assert [p.id for p in page.items] == [5]
        assert page.total is None

    @pytest.mark.asyncio
    async def test_search_categories_carries_poet(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.search_categories("غزل", limit=10, offset=0)

        assert [c.id for c in page.items] == [25]
        assert page.items[0].poet_name == "حافظ شیرازی"
        assert page.items[0].poet_slug == "hafez"

    @pytest.mark.asyncio
    async def test_search_poems_orders_by_id_descending(
        self, seeded_store: SQLiteLocalStore
    ) -> None:
        page = await seeded_store.search_poems("غزل", limit=10, offset=0, with_count=True)

        assert [p.id for p in page.items] == [2132, 2131]
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_search_poems_matches_verses_across_zwnj(
        self, seeded_store: SQLiteLocalStore
    ) -> None:
        page = await seeded_store.search_poems("می کند", limit=10, offset=0)
        assert [p.id for p in page.items] == [5001]

    @pytest.mark.asyncio
    async def test_search_poems_poet_filter(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.search_poems("کجا", poet_id=5, limit=10, offset=0)
        assert page.items == []

    @pytest.mark.asyncio
    async def test_search_poems_pagination(self, seeded_store: SQLiteLocalStore) -> None:
        first = await seeded_store.search_poems("غزل", limit=1, offset=0)
        second = await seeded_store.search_poems("غزل", limit=1, offset=1)
        assert [p.id for p in first.items + second.items] == [2132, 2131]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, seeded_store: SQLiteLocalStore) -> None:
        page = await seeded_store.search_poems("%%", limit=10, offset=0)
        assert page.items == []


# ═══════════════════════════════════════════════════════════════════════
# Writes & maintenance
# ═══════════════════════════════════════════════════════════════════════


class TestWrites:

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, seeded_store: SQLiteLocalStore) -> None:
        await seed_store(seeded_store)
        stats = await seeded_store.get_stats()
        assert (stats.poets, stats.categories, stats.poems) == (2, 6, 3)

    @pytest.mark.asyncio
    async def test_upsert_updates_existing_row(self, seeded_store: SQLiteLocalStore) -> None:
        await seeded_store.upsert_poems([NEY_NAMEH.model_copy(update={"title": "نی‌نامه"})])
        poem = await seeded_store.get_poem(5001)
        assert poem is not None
        assert poem.title == "نی‌نامه"

    @pytest.mark.asyncio
    async def test_set_category_poem_count(self, seeded_store: SQLiteLocalStore) -> None:
        await seeded_store.set_category_poem_count(26, 4)
        page = await seeded_store.get_poet(2)
        assert page is not None
        assert [c.id for c in page.categories] == [25, 26]

    @pytest.mark.asyncio
    async def test_poem_for_unknown_poet_is_rejected(self, local_store: SQLiteLocalStore) -> None:
        with pytest.raises(LocalStoreError) as info:
            await local_store.upsert_poems([Poem(id=1, poet_id=77, title="بی‌شاعر")])
        assert info.value.cause is not None

    @pytest.mark.asyncio
    async def test_empty_upserts_are_noops(self, local_store: SQLiteLocalStore) -> None:
        assert await local_store.upsert_poets([]) == 0
        assert await local_store.upsert_categories([]) == 0
        assert await local_store.upsert_poems([]) == 0

    @pytest.mark.asyncio
    async def test_get_stats_per_poet(self, seeded_store: SQLiteLocalStore) -> None:
        stats = await seeded_store.get_stats()

        per_poet = {row.poet_id: row for row in stats.per_poet}
        assert per_poet[2].categories == 3
        assert per_poet[2].poems == 2
        assert per_poet[5].categories == 3
        assert per_poet[5].poems == 1

    @pytest.mark.asyncio
    async def test_clear_reports_counts_and_empties(self, seeded_store: SQLiteLocalStore) -> None:
        before = await seeded_store.clear()

        assert (before.poets, before.categories, before.poems) == (2, 6, 3)
        after = await seeded_store.get_stats()
        assert (after.poets, after.categories, after.poems) == (0, 0, 0)


class TestReadOnly:

    @pytest.mark.asyncio
    async def test_read_only_store_reads(self, seeded_store, db_path: Path) -> None:
        store = SQLiteLocalStore(db_path=db_path, read_only=True)
        assert await store.has_poet(2) is True

    @pytest.mark.asyncio
    async def test_read_only_store_refuses_writes(self, seeded_store, db_path: Path) -> None:
        store = SQLiteLocalStore(db_path=db_path, read_only=True)
        with pytest.raises(LocalStoreError):
            await store.upsert_poets([Poet(id=9, name="سعدی")])
        with pytest.raises(LocalStoreError):
            await store.clear()
        with pytest.raises(LocalStoreError):
            await store.initialize()

    @pytest.mark.asyncio
    async def test_missing_database_raises_local_store_error(self, tmp_path: Path) -> None:
        store = SQLiteLocalStore(db_path=tmp_path / "absent.db", read_only=True)
        with pytest.raises(LocalStoreError):
            await store.has_poet(2)

    @pytest.mark.asyncio
    async def test_uninitialized_privileged_store_raises(self, tmp_path: Path) -> None:
        store = SQLiteLocalStore(db_path=tmp_path / "fresh.db")
        with pytest.raises(LocalStoreError):
            await store.upsert_categories([Category(id=1, poet_id=1, title="x")])
