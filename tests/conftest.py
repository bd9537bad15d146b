"""Shared pytest fixtures for the Ganjeh test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from src.models.poetry import Category, Chapter, Poem, Poet
from src.providers.local.sqlite_local_store import SQLiteLocalStore
from src.utils.retry import RetryPolicy

# ---------------------------------------------------------------------------
# Sample archive data
# ---------------------------------------------------------------------------

HAFEZ = Poet(
    id=2,
    name="حافظ شیرازی",
    slug="hafez",
    description="خواجه شمس‌الدین محمد حافظ شیرازی",
    birth_year=727,
    death_year=792,
)
HAFEZ_ROOT = Category(id=24, poet_id=2, parent_id=None, title="حافظ", url_slug="hafez")
GHAZALIYAT = Category(
    id=25, poet_id=2, parent_id=24, title="غزلیات", url_slug="ghazal", poem_count=2
)
# Imported but empty: hidden from the poet page.
QATAAT = Category(id=26, poet_id=2, parent_id=24, title="قطعات", url_slug="ghete", poem_count=0)

GHAZAL_1 = Poem(
    id=2131,
    poet_id=2,
    category_id=25,
    title="غزل شماره ۱",
    verses=[
        "الا یا ایها الساقی ادر کاسا و ناولها",
        "که عشق آسان نمود اول ولی افتاد مشکل‌ها",
    ],
)
GHAZAL_2 = Poem(
    id=2132,
    poet_id=2,
    category_id=25,
    title="غزل شماره ۲",
    verses=[
        "صلاح کار کجا و من خراب کجا",
        "ببین تفاوت ره کز کجاست تا به کجا",
        # Repeated line: order and duplicates must survive a round trip.
        "صلاح کار کجا و من خراب کجا",
    ],
)

RUMI = Poet(id=5, name="مولوی", slug="moulavi", description="جلال‌الدین محمد بلخی")
RUMI_ROOT = Category(id=100, poet_id=5, parent_id=None, title="مولوی", url_slug="moulavi")
DAFTAR_1 = Chapter(id=102, category_id=101, title="دفتر اول", url_slug="daftar1", poem_count=1)
MASNAVI = Category(
    id=101,
    poet_id=5,
    parent_id=100,
    title="مثنوی معنوی",
    url_slug="masnavi",
    poem_count=1,
    chapters=[DAFTAR_1],
)
NEY_NAMEH = Poem(
    id=5001,
    poet_id=5,
    category_id=101,
    chapter_id=102,
    title="بخش ۱ - سرآغاز",
    verses=["بشنو این نی چون شکایت می‌کند", "از جدایی‌ها حکایت می‌کند"],
)

FAST_RETRY = RetryPolicy(max_retries=2, base_delay=0, max_delay=0, jitter=0)


async def seed_store(store: SQLiteLocalStore) -> None:
    """Write the sample poets, categories and poems (parents first)."""
    await store.upsert_poets([HAFEZ, RUMI])
    await store.upsert_categories([HAFEZ_ROOT, GHAZALIYAT, QATAAT, RUMI_ROOT, MASNAVI])
    await store.upsert_poems([GHAZAL_1, GHAZAL_2, NEY_NAMEH])


# ---------------------------------------------------------------------------
# Local Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ganjeh.db"


@pytest_asyncio.fixture
async def local_store(db_path: Path) -> SQLiteLocalStore:
    """An initialized, empty, privileged store in a temp directory."""
    store = SQLiteLocalStore(db_path=db_path)
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def seeded_store(local_store: SQLiteLocalStore) -> SQLiteLocalStore:
    await seed_store(local_store)
    return local_store


# ---------------------------------------------------------------------------
# Remote Archive fixtures
# ---------------------------------------------------------------------------

REMOTE_BASE_URL = "https://ganjoor.test/api/ganjoor"


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy with no backoff delay."""
    return FAST_RETRY


@pytest.fixture
def mock_http_client() -> Callable[[dict[str, Any]], httpx.AsyncClient]:
    """Factory for an ``httpx.AsyncClient`` answering from a path -> payload map.

    A payload value may be a JSON-serializable object (200), an
    ``httpx.Response`` (returned as is), or an exception instance (raised
    by the transport).  Unknown paths answer 404.  Every requested path is
    appended to the client's ``requested`` list.
    """

    def _factory(routes: dict[str, Any]) -> httpx.AsyncClient:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path.removeprefix("/api/ganjoor")
            requested.append(path)
            answer = routes.get(path)
            if answer is None:
                return httpx.Response(404, json={"error": "not found"})
            if isinstance(answer, Exception):
                raise answer
            if isinstance(answer, httpx.Response):
                return answer
            return httpx.Response(200, json=answer)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested  # type: ignore[attr-defined]
        return client

    return _factory
