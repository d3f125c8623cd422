"""Workbench controller: engine lifecycle, dataset loading and query runs.

Phases:
    IDLE -> ENGINE_BOOTING -> ENGINE_READY -> DATASET_LOADING -> DATASET_READY

`query_running` is set while a query is outstanding; it is only entered from
DATASET_READY and always returns there. Each operation reports progress and
failures to the surface and raises a WorkbenchError; UI dispatchers (buttons,
keys, cards) run operations as tasks whose failures are already reported.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Sequence

import httpx
import structlog

from . import metrics
from .catalog import (
    QUERY_CATALOG,
    Mode,
    QueryDefinition,
    active_queries,
    find_by_hotkey,
)
from .config import Settings
from .engine import EngineHandle, EngineProvider, QueryResult, duckdb_boot
from .errors import (
    DatasetLoadError,
    EngineBootError,
    QueryExecutionError,
    WorkbenchError,
)
from .keys import (
    KeyPress,
    hotkey_digit,
    is_palette_shortcut,
    is_run_shortcut,
    primary_label,
)
from .pack import Manifest, load_pack
from .palette import CommandPalette
from .sidebar import CatalogSidebar, FeaturedCards
from .surface import Surface

logger = structlog.get_logger()

LoaderFn = Callable[[EngineHandle, str], Awaitable[Manifest]]


class Phase(str, Enum):
    IDLE = "idle"
    ENGINE_BOOTING = "engine_booting"
    ENGINE_READY = "engine_ready"
    DATASET_LOADING = "dataset_loading"
    DATASET_READY = "dataset_ready"


def _consume_exception(future: "asyncio.Future[Any]") -> None:
    # Abandoned (timed out) futures must not warn when they fail later
    if not future.cancelled():
        future.exception()


class Workbench:
    """Top-level controller owning `loaded` and the SQL buffer."""

    def __init__(
        self,
        mode: Mode,
        surface: Surface,
        engine: EngineProvider,
        manifest_url: str,
        loader: LoaderFn = load_pack,
        catalog: Sequence[QueryDefinition] = QUERY_CATALOG,
        boot_timeout: float = 15.0,
        load_timeout: float = 20.0,
        max_rows: int = 100,
        run_on_click: bool = False,
        platform: str | None = None,
    ):
        self.mode = Mode(mode)
        self.surface = surface
        self.engine = engine
        self.manifest_url = manifest_url
        self.boot_timeout = boot_timeout
        self.load_timeout = load_timeout
        self.max_rows = max_rows
        self.platform = platform
        self._loader = loader

        self.active_queries = active_queries(self.mode, catalog)
        self.palette = CommandPalette(self.active_queries, self.pick, run_on_click)
        self.sidebar = CatalogSidebar(self.active_queries, self.pick)
        self.cards = FeaturedCards(self.active_queries, self.pick_card)

        self.phase = Phase.IDLE
        self.loaded = False
        self.query_running = False
        self.handle: EngineHandle | None = None
        self.manifest: Manifest | None = None

        self._load_generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._log = logger.bind(mode=self.mode.value)

    @classmethod
    def from_settings(
        cls, settings: Settings, surface: Surface, **overrides: Any
    ) -> "Workbench":
        """Workbench backed by a real DuckDB engine."""

        def client_factory() -> httpx.AsyncClient:
            return httpx.AsyncClient(
                timeout=settings.http_timeout_seconds, follow_redirects=True
            )

        async def loader(handle: EngineHandle, manifest_url: str) -> Manifest:
            async with client_factory() as client:
                return await load_pack(handle, manifest_url, client=client)

        engine = EngineProvider(
            duckdb_boot(
                settings.vfs_dir,
                memory_limit=settings.duckdb_memory_limit,
                threads=settings.duckdb_threads,
                client_factory=client_factory,
            )
        )
        kwargs: dict[str, Any] = {
            "mode": settings.mode,
            "surface": surface,
            "engine": engine,
            "manifest_url": settings.manifest_url,
            "loader": loader,
            "boot_timeout": settings.boot_timeout_seconds,
            "load_timeout": settings.load_timeout_seconds,
            "max_rows": settings.max_display_rows,
            "run_on_click": settings.run_on_click,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def is_showcase(self) -> bool:
        return self.mode == Mode.SHOWCASE

    @property
    def shortcut_hint(self) -> str:
        """Keyboard shortcuts of explore mode, labelled for the platform."""
        if self.is_showcase:
            return ""
        label = primary_label(self.platform)
        return f"{label}+K queries · {label}+Enter run · Alt+1-9 presets"

    def mount(self) -> None:
        """Initial surface state for the mode."""
        if self.is_showcase:
            # Showcase editor is informational
            self.surface.set_read_only(True)
            self.surface.set_status("Ready. Click a demo to start.")
            self.surface.show_output("No demo run yet.")
        else:
            self.surface.set_status("Ready.")
            self.surface.show_output("Waiting…")

    def _report_failure(self, status: str, heading: str, detail: str, hint: str = "") -> None:
        self.surface.set_status(status)
        text = f"ERROR ({heading}):\n{detail}"
        if hint:
            text += f"\n\n{hint}"
        self.surface.show_output(text)

    # ============================================
    # Operations
    # ============================================

    async def ensure_engine(self) -> EngineHandle:
        """Boot the engine if needed, waiting at most `boot_timeout`."""
        if self.handle is not None:
            return self.handle

        self.phase = Phase.ENGINE_BOOTING
        self.surface.set_status("Booting DuckDB…")
        if not self.is_showcase:
            self.surface.show_output("Booting DuckDB…")

        pending = self.engine.get_handle()
        pending.add_done_callback(_consume_exception)
        try:
            handle = await asyncio.wait_for(asyncio.shield(pending), self.boot_timeout)
        except asyncio.TimeoutError:
            error = EngineBootError(f"DuckDB init timed out after {self.boot_timeout:g}s")
            self._boot_failed(error)
            raise error from None
        except EngineBootError as e:
            self._boot_failed(e)
            raise

        self.handle = handle
        if self.phase == Phase.ENGINE_BOOTING:
            self.phase = Phase.ENGINE_READY
        self.surface.set_status("DuckDB ready.")
        if not self.is_showcase:
            self.surface.show_output("DuckDB ready.")
        return handle

    def _boot_failed(self, error: EngineBootError) -> None:
        self.phase = Phase.IDLE
        self._log.error("engine_unavailable", error=error.message)
        self._report_failure(
            "DuckDB boot failed.",
            "DuckDB init",
            error.message,
            "The engine is not retried automatically; restart the workbench.",
        )

    async def load_dataset(self) -> Manifest:
        """Load the dataset pack, waiting at most `load_timeout`.

        `loaded` becomes True only when every view was created by the most
        recent load attempt.
        """
        handle = await self.ensure_engine()

        self._load_generation += 1
        generation = self._load_generation
        self.loaded = False
        self.phase = Phase.DATASET_LOADING
        self.surface.set_status("Loading demo pack…")
        self.surface.show_output("Loading demo pack…")
        self._log.info("pack_load_started", url=self.manifest_url, generation=generation)

        start = time.perf_counter()
        task = asyncio.ensure_future(self._loader(handle, self.manifest_url))
        task.add_done_callback(_consume_exception)
        try:
            manifest = await asyncio.wait_for(asyncio.shield(task), self.load_timeout)
        except asyncio.TimeoutError:
            error = DatasetLoadError(f"Pack load timed out after {self.load_timeout:g}s")
            self._load_failed(generation, error)
            raise error from None
        except DatasetLoadError as e:
            self._load_failed(generation, e)
            raise
        except Exception as e:
            error = DatasetLoadError(str(e))
            self._load_failed(generation, error)
            raise error from e

        if generation != self._load_generation:
            self._log.warning(
                "pack_load_stale", generation=generation, current=self._load_generation
            )
            return manifest

        duration = time.perf_counter() - start
        metrics.PACK_LOADS.labels(status="success").inc()
        metrics.PACK_LOAD_DURATION.observe(duration)

        self.loaded = True
        self.manifest = manifest
        self.phase = Phase.DATASET_READY
        self.surface.set_status(f"Demo pack loaded ({manifest.pack_name}).")
        if self.is_showcase:
            self.surface.show_output("Dataset ready. Click a demo card to run it.")
        else:
            self.surface.show_output("OK. Pick a preset (sidebar) or write custom SQL.")
        self._log.info(
            "pack_load_completed",
            pack_name=manifest.pack_name,
            duration_ms=round(duration * 1000, 2),
        )
        return manifest

    def _load_failed(self, generation: int, error: DatasetLoadError) -> None:
        metrics.PACK_LOADS.labels(status="error").inc()
        if generation != self._load_generation:
            self._log.warning("pack_load_stale_failure", generation=generation, error=error.message)
            return
        self.phase = Phase.ENGINE_READY
        self._log.error("pack_load_failed", error=error.message)
        self._report_failure(
            "Load failed.",
            "pack load",
            error.message,
            "Check the manifest and parquet fetches.",
        )

    async def run_query(self) -> QueryResult | None:
        """Run the SQL buffer and show the first `max_rows` rows.

        Returns None when nothing was executed.
        """
        if not self.loaded or self.handle is None:
            metrics.QUERY_COUNT.labels(status="rejected").inc()
            self.surface.set_status("Dataset not loaded.")
            self.surface.show_output(
                "Click a demo card." if self.is_showcase else "Click 'Load dataset' first."
            )
            return None

        sql = (self.surface.get_sql() or "").strip()
        if not sql:
            return None

        if self.query_running:
            metrics.QUERY_COUNT.labels(status="rejected").inc()
            self.surface.set_status("Query already running.")
            return None

        self.query_running = True
        self.surface.set_status("Running query…")
        start = time.perf_counter()
        try:
            result = await self.handle.conn.query(sql)
        except Exception as e:
            metrics.QUERY_COUNT.labels(status="error").inc()
            self._log.warning("query_failed", error=str(e))
            self._report_failure("Query failed", "query", str(e))
            raise QueryExecutionError(sql, str(e)) from e
        finally:
            self.query_running = False

        duration = time.perf_counter() - start
        metrics.QUERY_COUNT.labels(status="success").inc()
        metrics.QUERY_DURATION.observe(duration)
        metrics.QUERY_ROWS.observe(len(result))

        shown = result.head(self.max_rows)
        self.surface.show_rows(shown.columns, shown.rows)
        self.surface.set_status(f"OK ({len(shown)} rows shown, {round(duration * 1000)} ms)")
        self._log.info(
            "query_completed",
            rows=len(result),
            shown=len(shown),
            duration_ms=round(duration * 1000, 2),
        )
        return result

    async def apply_query(
        self, entry: QueryDefinition, run_now: bool = False
    ) -> QueryResult | None:
        """Copy the entry's SQL into the buffer, optionally running it."""
        self.surface.set_sql(entry.sql)
        if run_now:
            return await self.run_query()
        return None

    async def open_card(self, entry: QueryDefinition) -> QueryResult | None:
        """Featured card: load and run; showcase loads the dataset on first use."""
        if self.is_showcase and not self.loaded:
            await self.load_dataset()
        return await self.apply_query(entry, True)

    async def shutdown(self) -> None:
        if self._tasks:
            await self.wait_idle()
        if self.handle is not None:
            await self.handle.db.terminate()
            self.handle = None

    # ============================================
    # UI dispatch
    # ============================================

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run an operation in the background; failures are already reported."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, WorkbenchError):
            self._log.debug("operation_failed", error=error.message)
            return
        self._log.error("operation_crashed", error=str(error), exc_info=error)
        self._report_failure("Unexpected error", "workbench", str(error))

    async def wait_idle(self) -> None:
        """Wait for every dispatched operation to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def pick(self, entry: QueryDefinition, run_now: bool) -> None:
        """Commit pathway shared by palette, sidebar and hotkeys."""
        self.surface.set_sql(entry.sql)
        if run_now:
            self.spawn(self.run_query())

    def pick_card(self, entry: QueryDefinition) -> None:
        self.spawn(self.open_card(entry))

    def press_load(self) -> None:
        self.spawn(self.load_dataset())

    def press_run(self) -> None:
        self.spawn(self.run_query())

    def handle_key(self, key: KeyPress) -> bool:
        """Global keyboard surface. Returns True when the key was consumed."""
        if self.palette.is_open:
            return self.palette.handle_key(key)

        # Shortcuts and the palette only exist in explore mode
        if self.is_showcase:
            return False

        if is_palette_shortcut(key, self.platform):
            self.palette.show()
            return True
        if is_run_shortcut(key, self.platform):
            self.press_run()
            return True

        digit = hotkey_digit(key)
        if digit is not None:
            entry = find_by_hotkey(self.active_queries, digit)
            if entry is None:
                return False
            self.pick(entry, True)
            return True
        return False
