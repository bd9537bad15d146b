"""Unit tests for ImportService against a temporary SQLite store."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.models.poetry import Category, Poem, Poet, PoetPage
from src.providers.local.sqlite_local_store import SQLiteLocalStore
from src.services.import_service import ImportService, PoetPlan
from src.utils.errors import ConfigurationError, RemoteArchiveError
from tests.conftest import FAST_RETRY, HAFEZ, RUMI

OBSCURE = Poet(id=40, name="شاعر گمنام", slug="gomnam")

PAGES = {
    2: PoetPage(
        poet=HAFEZ,
        categories=[
            Category(id=25, poet_id=2, parent_id=24, title="غزلیات", url_slug="ghazal"),
            Category(id=26, poet_id=2, parent_id=24, title="قطعات", url_slug="ghete"),
        ],
    ),
    5: PoetPage(
        poet=RUMI,
        categories=[
            Category(id=101, poet_id=5, parent_id=100, title="مثنوی معنوی"),
            Category(id=110, poet_id=5, parent_id=100, title="غزلیات شمس"),
        ],
    ),
}

LISTINGS = {
    25: [
        Poem(id=2131, poet_id=2, category_id=25, title="غزل ۱", verses=["پیش‌نمایش"]),
        Poem(id=2132, poet_id=2, category_id=25, title="غزل ۲", verses=["پیش‌نمایش"]),
    ],
    26: [Poem(id=2600, poet_id=2, category_id=26, title="قطعه ۱", verses=["پیش‌نمایش"])],
    101: [
        Poem(
            id=5001,
            poet_id=5,
            category_id=101,
            chapter_id=102,
            title="سرآغاز",
            verses=["بشنو این نی"],
            chapter_title="دفتر اول",
        ),
        Poem(id=5002, poet_id=5, category_id=101, title="بی‌دفتر", verses=["بیت"]),
    ],
    110: [Poem(id=5100, poet_id=5, category_id=110, title="غزل شمس", verses=["بیت"])],
}

FULL_VERSES = ["مصرع یک", "مصرع دو", "مصرع یک"]


def _remote(missing_poems: set[int] = frozenset()) -> AsyncMock:
    remote = AsyncMock()
    remote.get_poets.return_value = [HAFEZ, RUMI, OBSCURE]

    async def get_poet(poet_id: int, *, include_counts: bool = True) -> PoetPage:
        if poet_id not in PAGES:
            raise RemoteArchiveError("no such poet", status=404)
        return PAGES[poet_id]

    async def get_category_poems(poet_id: int, category_id: int) -> list[Poem]:
        return LISTINGS[category_id]

    async def get_poem(poem_id: int) -> Poem:
        if poem_id in missing_poems:
            raise RemoteArchiveError("gone", status=404)
        return Poem(id=poem_id, poet_id=0, title="", verses=FULL_VERSES)

    remote.get_poet.side_effect = get_poet
    remote.get_category_poems.side_effect = get_category_poems
    remote.get_poem.side_effect = get_poem
    return remote


def _service(remote: AsyncMock, local, **kwargs) -> ImportService:
    options = {
        "full_poet_ids": [2],
        "preview_poet_count": 1,
        "preview_max_categories": 1,
        "batch_size": 2,
        "delay_seconds": 0,
        "retry_policy": FAST_RETRY,
        "sleep": AsyncMock(),
    }
    options.update(kwargs)
    return ImportService(remote, local, **options)


# ======================================================================
# Planning
# ======================================================================


class TestPlan:

    @pytest.mark.asyncio
    async def test_full_tier_then_preview(self) -> None:
        plan = await _service(_remote(), AsyncMock()).plan()
        assert plan == [PoetPlan(poet_id=2, full=True), PoetPlan(poet_id=5, full=False)]

    @pytest.mark.asyncio
    async def test_preview_count_override(self) -> None:
        plan = await _service(_remote(), AsyncMock()).plan(preview_count=2)
        assert [p.poet_id for p in plan] == [2, 5, 40]

    @pytest.mark.asyncio
    async def test_zero_preview_skips_poet_list(self) -> None:
        remote = _remote()
        plan = await _service(remote, AsyncMock()).plan(preview_count=0)
        assert plan == [PoetPlan(poet_id=2, full=True)]
        remote.get_poets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_explicit_ids_are_full_and_deduplicated(self) -> None:
        remote = _remote()
        plan = await _service(remote, AsyncMock()).plan(poet_ids=[5, 5, 40])
        assert plan == [PoetPlan(poet_id=5, full=True), PoetPlan(poet_id=40, full=True)]
        remote.get_poets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_poet_list_failure_keeps_full_tier(self) -> None:
        remote = _remote()
        remote.get_poets.side_effect = RemoteArchiveError("down", status=503)
        plan = await _service(remote, AsyncMock()).plan()
        assert plan == [PoetPlan(poet_id=2, full=True)]

    def test_from_config(self) -> None:
        service = ImportService.from_config(
            AsyncMock(),
            AsyncMock(),
            {"full_poet_ids": [7], "preview_poet_count": 0, "batch_size": 10},
        )
        assert service._full_poet_ids == [7]
        assert service._preview_poet_count == 0
        assert service._batch_size == 10


# ======================================================================
# Run
# ======================================================================


class TestRun:

    @pytest.mark.asyncio
    async def test_imports_full_and_preview_tiers(self, local_store: SQLiteLocalStore) -> None:
        summary = await _service(_remote(missing_poems={2132}), local_store).run()

        assert summary.poets == 2
        # 25, 26 for Hafez; 101 plus chapter 102 for Rumi (preview: 1 category).
        assert summary.categories == 4
        assert summary.poems == 5
        assert summary.poems_full_verses == 2
        # 2132 fell back to its listing preview; 5001 and 5002 are preview tier.
        assert summary.poems_preview == 3
        assert summary.failures == 0

        assert await local_store.has_poet(2)
        assert await local_store.has_poet(5)
        assert not await local_store.has_poet(40)

    @pytest.mark.asyncio
    async def test_written_tree_is_browsable(self, local_store: SQLiteLocalStore) -> None:
        await _service(_remote(missing_poems={2132}), local_store).run()

        hafez = await local_store.get_poet(2)
        assert hafez is not None
        assert [(c.id, c.poem_count) for c in hafez.categories] == [(25, 2), (26, 1)]

        full = await local_store.get_poem(2131)
        assert full is not None
        assert full.verses == FULL_VERSES
        assert full.title == "غزل ۱"
        preview = await local_store.get_poem(2132)
        assert preview is not None
        assert preview.verses == ["پیش‌نمایش"]

        rumi = await local_store.get_poet(5)
        assert rumi is not None
        assert [c.id for c in rumi.categories] == [101]
        assert rumi.categories[0].poem_count == 2
        assert [(ch.id, ch.poem_count) for ch in rumi.categories[0].chapters] == [(102, 1)]

        chapter = await local_store.get_chapter(5, 101, 102)
        assert chapter is not None
        assert [p.id for p in chapter.poems] == [5001]
        assert chapter.poems[0].category_id == 101

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, local_store: SQLiteLocalStore) -> None:
        service = _service(_remote(), local_store)
        await service.run()
        first = await local_store.get_stats()
        await service.run()
        second = await local_store.get_stats()

        assert (first.poets, first.categories, first.poems) == (
            second.poets,
            second.categories,
            second.poems,
        )

    @pytest.mark.asyncio
    async def test_explicit_poet_imports_every_category(
        self, local_store: SQLiteLocalStore
    ) -> None:
        remote = _remote()
        summary = await _service(remote, local_store).run(poet_ids=[5])

        assert summary.poets == 1
        assert summary.poems == 3
        assert summary.poems_full_verses == 3
        assert not await local_store.has_poet(2)

    @pytest.mark.asyncio
    async def test_failing_poet_is_counted_and_skipped(
        self, local_store: SQLiteLocalStore
    ) -> None:
        summary = await _service(_remote(), local_store).run(poet_ids=[77, 2])

        assert summary.failures == 1
        assert summary.poets == 1
        assert await local_store.has_poet(2)

    @pytest.mark.asyncio
    async def test_failing_category_is_counted_and_skipped(
        self, local_store: SQLiteLocalStore
    ) -> None:
        remote = _remote()
        original = remote.get_category_poems.side_effect

        async def flaky(poet_id: int, category_id: int) -> list[Poem]:
            if category_id == 26:
                raise RemoteArchiveError("bad gateway", status=502)
            return await original(poet_id, category_id)

        remote.get_category_poems.side_effect = flaky
        summary = await _service(remote, local_store).run(poet_ids=[2])

        assert summary.failures == 1
        assert summary.categories == 1
        assert summary.poems == 2
        # Transient failure: first attempt plus two retries.
        assert sum(
            1 for call in remote.get_category_poems.await_args_list if call.args[1] == 26
        ) == 3

    @pytest.mark.asyncio
    async def test_requires_local_store(self) -> None:
        with pytest.raises(ConfigurationError):
            await _service(_remote(), None).run()


class TestThrottle:

    @pytest.mark.asyncio
    async def test_consecutive_calls_are_spaced(self) -> None:
        sleep = AsyncMock()
        service = _service(_remote(), AsyncMock(), delay_seconds=5.0, sleep=sleep)

        await service._throttle()
        await service._throttle()

        sleep.assert_awaited_once()
        assert 0 < sleep.await_args.args[0] <= 5.0
