"""Import Pipeline -- populates the Local Store from the Remote Archive.

Runs out-of-band (operator CLI), never on a request path.

Poet selection is two-tiered:

  FULL TIER    -- a curated list of famous poets (``import.full_poet_ids``).
                  Every top-level category is imported, and each poem is
                  fetched individually so its complete verse list is stored.
  PREVIEW TIER -- the next ``import.preview_poet_count`` poets in Remote
                  Archive order that are not in the full tier.  Only the
                  first ``import.preview_max_categories`` categories are
                  imported, using the verse previews from the category
                  listing.

Only selected poets are written, so "present in the Local Store" always
means "mirrored".  For each poet the pipeline writes:

    poets       <- the poet
    categories  <- root category, its children (top-level categories), and
                   each child's children (chapters)
    poems       <- every poem of each imported category, in batches; chapter
                   poems keep the top-level category id plus their chapter id

After a category is written its ``poem_count`` (and each chapter's) is set
to the number of poems actually written.

Remote calls are spaced by a fixed delay and retried with backoff.  One
failing poet or category is logged and counted; the run continues.  Only a
missing Local Store aborts the run.  Re-running is safe: every write is an
upsert keyed by the archive's ids.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from src.interfaces.local_store_provider import ILocalStoreProvider
from src.interfaces.remote_archive_provider import IRemoteArchiveProvider
from src.models.poetry import Category, Chapter, ImportSummary, Poem, Poet
from src.utils.concurrency import windowed
from src.utils.errors import ConfigurationError, LocalStoreError, RemoteArchiveError
from src.utils.logging import get_logger
from src.utils.retry import IMPORT_RETRY_POLICY, RetryPolicy, retry_remote

_T = TypeVar("_T")

DEFAULT_FULL_POET_IDS: tuple[int, ...] = (2, 7, 5, 4, 9, 6, 3, 1, 11, 8, 26, 10, 25, 12, 13)


@dataclass
class _Counters:
    poets: int = 0
    categories: int = 0
    poems: int = 0
    poems_full_verses: int = 0
    poems_preview: int = 0
    failures: int = 0


@dataclass(frozen=True)
class PoetPlan:
    """One poet selected for import and the tier it belongs to."""

    poet_id: int
    full: bool


class ImportService:
    """Mirrors the selected poets from the Remote Archive into the Local Store.

    Parameters
    ----------
    remote:
        Remote Archive client.
    local:
        Privileged Local Store, or ``None`` when not configured.
    full_poet_ids:
        Poets imported completely, in this order.
    preview_poet_count:
        How many further poets to import as a preview.
    preview_max_categories:
        Top-level categories imported per preview-tier poet.
    batch_size:
        Poems per upsert call.
    delay_seconds:
        Minimum spacing between Remote Archive calls.
    retry_policy:
        Backoff for Remote Archive calls.
    sleep:
        Injected for tests so throttling and backoff do not actually wait.
    """

    def __init__(
        self,
        remote: IRemoteArchiveProvider,
        local: ILocalStoreProvider | None,
        full_poet_ids: list[int] | tuple[int, ...] = DEFAULT_FULL_POET_IDS,
        preview_poet_count: int = 10,
        preview_max_categories: int = 3,
        batch_size: int = 50,
        delay_seconds: float = 0.1,
        retry_policy: RetryPolicy = IMPORT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._remote = remote
        self._local = local
        self._full_poet_ids = list(full_poet_ids)
        self._preview_poet_count = preview_poet_count
        self._preview_max_categories = preview_max_categories
        self._batch_size = max(1, batch_size)
        self._delay = delay_seconds
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._last_request_time: float = 0.0
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        remote: IRemoteArchiveProvider,
        local: ILocalStoreProvider | None,
        import_config: dict,
    ) -> ImportService:
        """Build from the ``import`` section of the loaded configuration."""
        return cls(
            remote,
            local,
            full_poet_ids=import_config.get("full_poet_ids", DEFAULT_FULL_POET_IDS),
            preview_poet_count=import_config.get("preview_poet_count", 10),
            preview_max_categories=import_config.get("preview_max_categories", 3),
            batch_size=import_config.get("batch_size", 50),
            delay_seconds=import_config.get("delay_seconds", 0.1),
        )

    # ------------------------------------------------------------------
    # Remote plumbing
    # ------------------------------------------------------------------

    async def _throttle(self) -> None:
        """Enforce minimum delay between Remote Archive calls."""
        now = time.monotonic()
        elapsed = now - self._last_request_time
        if self._last_request_time > 0 and elapsed < self._delay:
            await self._sleep(self._delay - elapsed)
        self._last_request_time = time.monotonic()

    async def _remote_call(self, operation: str, call: Callable[[], Awaitable[_T]]) -> _T:
        async def _attempt() -> _T:
            await self._throttle()
            return await call()

        return await retry_remote(
            _attempt, self._retry_policy, operation=operation, sleep=self._sleep
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def plan(
        self,
        poet_ids: list[int] | None = None,
        preview_count: int | None = None,
    ) -> list[PoetPlan]:
        """Decide which poets to import.

        Explicit ``poet_ids`` are imported in full and nothing else is
        selected.  Otherwise the full tier is followed by up to
        ``preview_count`` (default: configured) preview-tier poets.  If the
        poet list cannot be fetched, only the full tier is planned.
        """
        if poet_ids:
            return [PoetPlan(poet_id=pid, full=True) for pid in dict.fromkeys(poet_ids)]

        plan = [PoetPlan(poet_id=pid, full=True) for pid in self._full_poet_ids]
        count = self._preview_poet_count if preview_count is None else preview_count
        if count <= 0:
            return plan

        try:
            poets = await self._remote_call("get_poets", self._remote.get_poets)
        except RemoteArchiveError as exc:
            self._logger.error("import_poet_list_failed", status=exc.status, error=str(exc))
            return plan

        full_ids = set(self._full_poet_ids)
        preview = [p.id for p in poets if p.id not in full_ids][:count]
        plan.extend(PoetPlan(poet_id=pid, full=False) for pid in preview)
        return plan

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(
        self,
        poet_ids: list[int] | None = None,
        preview_count: int | None = None,
    ) -> ImportSummary:
        """Import the planned poets and return a summary.

        Raises
        ------
        ConfigurationError
            No Local Store is configured, or it cannot be initialized.
        """
        if self._local is None:
            raise ConfigurationError("Import requires a configured local store (LOCAL_STORE_PATH)")

        async with self._lock:
            started = time.monotonic()
            try:
                await self._local.initialize()
            except LocalStoreError as exc:
                raise ConfigurationError(f"Local store could not be initialized: {exc}") from exc

            counters = _Counters()
            plan = await self.plan(poet_ids, preview_count)
            self._logger.info(
                "import_started",
                full=sum(1 for p in plan if p.full),
                preview=sum(1 for p in plan if not p.full),
            )

            for entry in plan:
                await self._import_poet(entry, counters)

            summary = ImportSummary(
                poets=counters.poets,
                categories=counters.categories,
                poems=counters.poems,
                poems_full_verses=counters.poems_full_verses,
                poems_preview=counters.poems_preview,
                failures=counters.failures,
                duration_seconds=round(time.monotonic() - started, 2),
            )
            self._logger.info("import_finished", **summary.model_dump())
            return summary

    async def _import_poet(self, entry: PoetPlan, counters: _Counters) -> None:
        poet_id = entry.poet_id
        try:
            page = await self._remote_call(
                "get_poet", lambda: self._remote.get_poet(poet_id, include_counts=False)
            )
        except RemoteArchiveError as exc:
            counters.failures += 1
            self._logger.error("import_poet_failed", poet_id=poet_id, status=exc.status, error=str(exc))
            return

        categories = page.categories
        if not entry.full:
            categories = categories[: self._preview_max_categories]

        try:
            await self._local.upsert_poets([page.poet])
            root = self._root_category(page.poet, categories)
            if root is not None:
                await self._local.upsert_categories([root])
        except LocalStoreError as exc:
            counters.failures += 1
            self._logger.error("import_poet_write_failed", poet_id=poet_id, error=str(exc))
            return
        counters.poets += 1

        self._logger.info(
            "import_poet_started",
            poet_id=poet_id,
            name=page.poet.name,
            tier="full" if entry.full else "preview",
            categories=len(categories),
        )
        for category in categories:
            await self._import_category(page.poet, category, entry.full, counters)

    @staticmethod
    def _root_category(poet: Poet, categories: list[Category]) -> Category | None:
        root_id = next((c.parent_id for c in categories if c.parent_id is not None), None)
        if root_id is None:
            return None
        return Category(
            id=root_id,
            poet_id=poet.id,
            parent_id=None,
            title=poet.name,
            url_slug=poet.slug or None,
        )

    async def _import_category(
        self,
        poet: Poet,
        category: Category,
        full: bool,
        counters: _Counters,
    ) -> None:
        try:
            listing = await self._remote_call(
                "get_category_poems",
                lambda: self._remote.get_category_poems(poet.id, category.id),
            )
        except RemoteArchiveError as exc:
            counters.failures += 1
            self._logger.error(
                "import_category_failed",
                poet_id=poet.id,
                category_id=category.id,
                status=exc.status,
                error=str(exc),
            )
            return

        chapters = self._chapters_from_listing(category.id, listing)
        if full:
            poems = [await self._full_poem(poet, category, item, counters) for item in listing]
        else:
            poems = [self._anchor(poet, category, item) for item in listing]
            counters.poems_preview += len(poems)

        try:
            await self._local.upsert_categories(
                [category.model_copy(update={"poem_count": 0, "chapters": chapters})]
            )
        except LocalStoreError as exc:
            counters.failures += 1
            self._logger.error(
                "import_category_write_failed", category_id=category.id, error=str(exc)
            )
            return
        counters.categories += 1 + len(chapters)

        written: list[Poem] = []
        for batch in windowed(poems, self._batch_size):
            try:
                await self._local.upsert_poems(list(batch))
                written.extend(batch)
            except LocalStoreError as exc:
                counters.failures += 1
                self._logger.error(
                    "import_poem_batch_failed",
                    category_id=category.id,
                    batch_size=len(batch),
                    error=str(exc),
                )
        counters.poems += len(written)

        try:
            await self._local.set_category_poem_count(category.id, len(written))
            for chapter in chapters:
                chapter_count = sum(1 for p in written if p.chapter_id == chapter.id)
                await self._local.set_category_poem_count(chapter.id, chapter_count)
        except LocalStoreError as exc:
            counters.failures += 1
            self._logger.error(
                "import_poem_count_failed", category_id=category.id, error=str(exc)
            )

        self._logger.info(
            "import_category_done",
            poet_id=poet.id,
            category_id=category.id,
            chapters=len(chapters),
            poems=len(written),
        )

    @staticmethod
    def _chapters_from_listing(category_id: int, listing: list[Poem]) -> list[Chapter]:
        chapters: dict[int, Chapter] = {}
        for poem in listing:
            if poem.chapter_id is None or poem.chapter_id in chapters:
                continue
            chapters[poem.chapter_id] = Chapter(
                id=poem.chapter_id,
                category_id=category_id,
                title=poem.chapter_title or "",
                poem_count=0,
            )
        return list(chapters.values())

    @staticmethod
    def _anchor(poet: Poet, category: Category, poem: Poem) -> Poem:
        """Pin a poem to the imported top-level category (and its chapter)."""
        return poem.model_copy(
            update={
                "poet_id": poet.id,
                "category_id": category.id,
                "poet_name": poem.poet_name or poet.name,
                "category_title": category.title,
            }
        )

    async def _full_poem(
        self,
        poet: Poet,
        category: Category,
        listed: Poem,
        counters: _Counters,
    ) -> Poem:
        """Fetch the complete poem; fall back to the listing preview on failure."""
        try:
            full = await self._remote_call("get_poem", lambda: self._remote.get_poem(listed.id))
        except RemoteArchiveError as exc:
            self._logger.warning(
                "import_poem_fetch_failed", poem_id=listed.id, status=exc.status, error=str(exc)
            )
            counters.poems_preview += 1
            return self._anchor(poet, category, listed)

        counters.poems_full_verses += 1
        return self._anchor(
            poet,
            category,
            listed.model_copy(update={"title": full.title or listed.title, "verses": full.verses}),
        )
