"""Unit tests for HybridResolver routing and fallback behaviour."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.models.poetry import ChapterPage, DataSource, PoetPage
from src.services.hybrid_resolver import HybridResolver
from src.utils.errors import (
    CategoryNotAvailable,
    ChapterNotAvailable,
    LocalStoreError,
    PoemNotAvailable,
    PoetNotAvailable,
    QueryValidationError,
    RemoteArchiveError,
)
from tests.conftest import (
    DAFTAR_1,
    FAST_RETRY,
    GHAZAL_1,
    GHAZALIYAT,
    HAFEZ,
    HAFEZ_ROOT,
    NEY_NAMEH,
    QATAAT,
    RUMI,
)

HAFEZ_PAGE = PoetPage(poet=HAFEZ, categories=[GHAZALIYAT])


def _resolver(
    remote: AsyncMock,
    local: AsyncMock | None,
    local_timeout: float = 2.0,
) -> HybridResolver:
    return HybridResolver(
        remote=remote,
        local=local,
        local_timeout=local_timeout,
        retry_policy=FAST_RETRY,
    )


@pytest.fixture
def remote() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def local() -> AsyncMock:
    mock = AsyncMock()
    mock.has_poet.return_value = False
    return mock


# ======================================================================
# resolve_poet
# ======================================================================


class TestResolvePoet:

    @pytest.mark.asyncio
    async def test_local_poet_never_calls_remote(self, remote, local) -> None:
        local.has_poet.return_value = True
        local.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.value == HAFEZ_PAGE
        assert resolved.source == DataSource.LOCAL
        assert resolved.fallback is False
        remote.get_poet.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_local_poet_only_probes_local(self, remote, local) -> None:
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(999)

        assert resolved.source == DataSource.REMOTE
        assert resolved.fallback is False
        local.has_poet.assert_awaited_once_with(999)
        local.get_poet.assert_not_awaited()
        remote.get_poet.assert_awaited_once_with(999)

    @pytest.mark.asyncio
    async def test_probe_error_falls_back_to_remote(self, remote, local) -> None:
        local.has_poet.side_effect = LocalStoreError("locked")
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.source == DataSource.REMOTE
        local.get_poet.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_timeout_falls_back_to_remote(self, remote, local) -> None:
        async def slow_probe(poet_id: int) -> bool:
            await asyncio.sleep(1)
            return True

        local.has_poet.side_effect = slow_probe
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local, local_timeout=0.01).resolve_poet(2)

        assert resolved.source == DataSource.REMOTE

    @pytest.mark.asyncio
    async def test_local_read_error_falls_back(self, remote, local) -> None:
        local.has_poet.return_value = True
        local.get_poet.side_effect = LocalStoreError("disk")
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.source == DataSource.REMOTE
        assert resolved.fallback is True

    @pytest.mark.asyncio
    async def test_local_row_missing_falls_back(self, remote, local) -> None:
        local.has_poet.return_value = True
        local.get_poet.return_value = None
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.fallback is True

    @pytest.mark.asyncio
    async def test_local_poet_without_categories_falls_back(self, remote, local) -> None:
        # Mid-import, or a preview poet whose categories all failed.
        local.has_poet.return_value = True
        local.get_poet.return_value = PoetPage(poet=HAFEZ, categories=[])
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.value == HAFEZ_PAGE
        assert resolved.source == DataSource.REMOTE
        assert resolved.fallback is True
        remote.get_poet.assert_awaited_once_with(2)

    @pytest.mark.asyncio
    async def test_zero_count_categories_in_store_fall_back(self, remote, local_store) -> None:
        await local_store.upsert_poets([HAFEZ])
        await local_store.upsert_categories([HAFEZ_ROOT, QATAAT])
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, local_store).resolve_poet(2)

        assert resolved.source == DataSource.REMOTE
        assert resolved.value.categories == [GHAZALIYAT]
        assert remote.get_poet.await_count == 1

    @pytest.mark.asyncio
    async def test_no_local_store_configured(self, remote) -> None:
        remote.get_poet.return_value = HAFEZ_PAGE

        resolved = await _resolver(remote, None).resolve_poet(2)

        assert resolved.source == DataSource.REMOTE

    @pytest.mark.asyncio
    async def test_remote_not_found(self, remote, local) -> None:
        remote.get_poet.side_effect = RemoteArchiveError("nope", status=404)

        with pytest.raises(PoetNotAvailable) as info:
            await _resolver(remote, local).resolve_poet(12345)

        assert info.value.status == 404
        # 404 is an answer, not an outage: no retry.
        assert remote.get_poet.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_remote_failure_is_retried(self, remote, local) -> None:
        remote.get_poet.side_effect = [RemoteArchiveError("busy", status=503), HAFEZ_PAGE]

        resolved = await _resolver(remote, local).resolve_poet(2)

        assert resolved.value == HAFEZ_PAGE
        assert remote.get_poet.await_count == 2

    @pytest.mark.asyncio
    async def test_remote_outage_after_retries(self, remote, local) -> None:
        remote.get_poet.side_effect = RemoteArchiveError("down", status=502)

        with pytest.raises(PoetNotAvailable) as info:
            await _resolver(remote, local).resolve_poet(2)

        assert info.value.status == 502
        assert remote.get_poet.await_count == FAST_RETRY.max_retries + 1

    @pytest.mark.asyncio
    async def test_rejects_non_positive_id(self, remote, local) -> None:
        with pytest.raises(QueryValidationError):
            await _resolver(remote, local).resolve_poet(0)
        local.has_poet.assert_not_awaited()


# ======================================================================
# Category / chapter / poem
# ======================================================================


class TestResolveCategoryAndChapter:

    @pytest.mark.asyncio
    async def test_category_from_local(self, remote, local) -> None:
        local.has_poet.return_value = True
        local.get_category_poems.return_value = [GHAZAL_1]

        resolved = await _resolver(remote, local).resolve_category_poems(2, 25)

        assert resolved.value == [GHAZAL_1]
        assert resolved.source == DataSource.LOCAL
        remote.get_category_poems.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_local_category_falls_back(self, remote, local) -> None:
        local.has_poet.return_value = True
        local.get_category_poems.return_value = []
        remote.get_category_poems.return_value = [GHAZAL_1]

        resolved = await _resolver(remote, local).resolve_category_poems(2, 30)

        assert resolved.source == DataSource.REMOTE
        assert resolved.fallback is True

    @pytest.mark.asyncio
    async def test_category_remote_failure(self, remote, local) -> None:
        remote.get_category_poems.side_effect = RemoteArchiveError("gone", status=404)

        with pytest.raises(CategoryNotAvailable):
            await _resolver(remote, local).resolve_category_poems(2, 30)

    @pytest.mark.asyncio
    async def test_chapter_from_local(self, remote, local) -> None:
        page = ChapterPage(chapter=DAFTAR_1, category_title="مثنوی معنوی", poems=[NEY_NAMEH])
        local.has_poet.return_value = True
        local.get_chapter.return_value = page

        resolved = await _resolver(remote, local).resolve_chapter(5, 101, 102)

        assert resolved.value == page
        remote.get_chapter.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chapter_remote_failure(self, remote, local) -> None:
        remote.get_chapter.side_effect = RemoteArchiveError("down", status=None)

        with pytest.raises(ChapterNotAvailable) as info:
            await _resolver(remote, local).resolve_chapter(5, 101, 102)

        assert info.value.status is None


class TestResolvePoem:

    @pytest.mark.asyncio
    async def test_local_first_without_probe(self, remote, local) -> None:
        local.get_poem.return_value = NEY_NAMEH

        resolved = await _resolver(remote, local).resolve_poem(5001)

        assert resolved.source == DataSource.LOCAL
        local.has_poet.assert_not_awaited()
        remote.get_poem.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_locally_goes_remote(self, remote, local) -> None:
        local.get_poem.return_value = None
        remote.get_poem.return_value = NEY_NAMEH

        resolved = await _resolver(remote, local).resolve_poem(5001)

        assert resolved.source == DataSource.REMOTE
        assert resolved.fallback is True

    @pytest.mark.asyncio
    async def test_local_error_goes_remote(self, remote, local) -> None:
        local.get_poem.side_effect = LocalStoreError("disk")
        remote.get_poem.return_value = NEY_NAMEH

        resolved = await _resolver(remote, local).resolve_poem(5001)

        assert resolved.value == NEY_NAMEH

    @pytest.mark.asyncio
    async def test_unavailable_everywhere(self, remote, local) -> None:
        local.get_poem.return_value = None
        remote.get_poem.side_effect = RemoteArchiveError("nope", status=404)

        with pytest.raises(PoemNotAvailable):
            await _resolver(remote, local).resolve_poem(5001)


# ======================================================================
# list_poets
# ======================================================================


class TestListPoets:

    @pytest.mark.asyncio
    async def test_remote_is_authoritative(self, remote, local) -> None:
        remote.get_poets.return_value = [HAFEZ, RUMI]

        resolved = await _resolver(remote, local).list_poets()

        assert resolved.source == DataSource.REMOTE
        local.list_poets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_degrades_to_local_subset(self, remote, local) -> None:
        remote.get_poets.side_effect = RemoteArchiveError("down", status=503)
        local.list_poets.return_value = [HAFEZ]

        resolved = await _resolver(remote, local).list_poets()

        assert resolved.value == [HAFEZ]
        assert resolved.source == DataSource.LOCAL
        assert resolved.fallback is True

    @pytest.mark.asyncio
    async def test_empty_local_list_is_not_a_fallback(self, remote, local) -> None:
        remote.get_poets.side_effect = RemoteArchiveError("down", status=503)
        local.list_poets.return_value = []

        with pytest.raises(PoetNotAvailable) as info:
            await _resolver(remote, local).list_poets()

        assert info.value.status == 503
