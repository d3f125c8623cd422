"""DuckDB engine handle provider.

The engine lives behind a single background worker thread; the asyncio side
only awaits calls dispatched to it:

- ExecutionBundle / select_bundle: pick engine settings for the runtime
- AsyncDuckDB / AsyncConnection: awaitable facade over the worker
- EngineProvider: boots once and shares the pending boot with all callers
"""

import asyncio
import functools
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

import duckdb
import httpx
import structlog

from . import metrics
from .errors import EngineBootError
from .vfs import DataProtocol, VirtualFileSystem

logger = structlog.get_logger()


# ============================================
# Execution bundles
# ============================================


@dataclass(frozen=True)
class ExecutionBundle:
    """Engine settings variant; usable when the runtime has `min_cpus` CPUs."""

    name: str
    threads: int
    memory_limit: str
    min_cpus: int = 1


def default_bundles(
    memory_limit: str = "1GB", threads: int | None = None
) -> dict[str, ExecutionBundle]:
    """Single-threaded `mvp` and multi-threaded `eh` bundles."""
    cpus = os.cpu_count() or 1
    return {
        "mvp": ExecutionBundle("mvp", threads=threads or 1, memory_limit=memory_limit),
        "eh": ExecutionBundle(
            "eh", threads=threads or cpus, memory_limit=memory_limit, min_cpus=2
        ),
    }


def select_bundle(
    bundles: dict[str, ExecutionBundle], cpu_count: int | None = None
) -> ExecutionBundle:
    """Pick the most capable bundle the runtime supports."""
    cpus = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    supported = [b for b in bundles.values() if cpus >= b.min_cpus]
    if not supported:
        raise EngineBootError(f"No execution bundle supports a runtime with {cpus} CPU(s)")
    return max(supported, key=lambda b: b.min_cpus)


# ============================================
# Worker and async facade
# ============================================


class EngineWorker:
    """Single background thread that owns every DuckDB call."""

    def __init__(self, name: str = "duckdb-worker"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    async def call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(fn, *args, **kwargs)
        )

    def terminate(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


@dataclass
class QueryResult:
    """Materialized query result."""

    columns: list[str]
    rows: list[tuple]

    def __len__(self) -> int:
        return len(self.rows)

    def head(self, limit: int) -> "QueryResult":
        return QueryResult(self.columns, self.rows[:limit])


class AsyncConnection:
    """Awaitable wrapper around one DuckDB connection."""

    def __init__(self, worker: EngineWorker, conn: duckdb.DuckDBPyConnection):
        self._worker = worker
        self._conn = conn

    async def query(self, sql: str) -> QueryResult:
        return await self._worker.call(self._execute, sql)

    def _execute(self, sql: str) -> QueryResult:
        cursor = self._conn.execute(sql)
        if cursor.description is None:
            return QueryResult([], [])
        columns = [d[0] for d in cursor.description]
        return QueryResult(columns, cursor.fetchall())

    async def close(self) -> None:
        await self._worker.call(self._conn.close)


class AsyncDuckDB:
    """In-memory DuckDB database driven from an EngineWorker.

    Bare filenames in queries resolve against the VFS directory.
    """

    def __init__(self, worker: EngineWorker, vfs: VirtualFileSystem):
        self._worker = worker
        self.vfs = vfs
        self._db: duckdb.DuckDBPyConnection | None = None

    async def instantiate(self, bundle: ExecutionBundle) -> None:
        self._db = await self._worker.call(self._open, bundle)

    def _open(self, bundle: ExecutionBundle) -> duckdb.DuckDBPyConnection:
        self.vfs.root.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(
            ":memory:",
            config={
                "threads": str(bundle.threads),
                "memory_limit": bundle.memory_limit,
                "file_search_path": str(self.vfs.root),
            },
        )

    async def connect(self) -> AsyncConnection:
        if self._db is None:
            raise RuntimeError("Engine not instantiated")
        conn = await self._worker.call(self._db.cursor)
        return AsyncConnection(self._worker, conn)

    async def register_file_url(
        self,
        name: str,
        url: str,
        protocol: DataProtocol = DataProtocol.HTTP,
        cacheable: bool = True,
    ) -> None:
        await self.vfs.register(name, url, protocol, cacheable)

    async def terminate(self) -> None:
        if self._db is not None:
            await self._worker.call(self._db.close)
            self._db = None
        self._worker.terminate()


@dataclass
class EngineHandle:
    """Booted engine: database, its one open connection, and the bundle used."""

    db: AsyncDuckDB
    conn: AsyncConnection
    bundle: ExecutionBundle


BootFn = Callable[[], Awaitable[EngineHandle]]


def duckdb_boot(
    vfs_dir: Path,
    memory_limit: str = "1GB",
    threads: int | None = None,
    client_factory: Callable[[], httpx.AsyncClient] | None = None,
) -> BootFn:
    """Build the boot sequence for a real DuckDB engine."""

    async def boot() -> EngineHandle:
        bundle = select_bundle(default_bundles(memory_limit, threads))
        worker = EngineWorker()
        db = AsyncDuckDB(worker, VirtualFileSystem(vfs_dir, client_factory))
        try:
            await db.instantiate(bundle)
            conn = await db.connect()
        except Exception:
            worker.terminate()
            raise
        logger.info("engine_instantiated", bundle=bundle.name, threads=bundle.threads)
        return EngineHandle(db=db, conn=conn, bundle=bundle)

    return boot


# ============================================
# Provider
# ============================================


class EngineProvider:
    """
    Boots the engine at most once and memoizes the pending boot.

    Every caller, concurrent or later, awaits the same future. A failed boot
    stays failed until reset() is called explicitly.
    """

    def __init__(self, boot: BootFn):
        self._boot = boot
        self._pending: asyncio.Future | None = None
        self.boot_attempts = 0

    def get_handle(self) -> "asyncio.Future[EngineHandle]":
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._run_boot())
        return self._pending

    @property
    def handle(self) -> EngineHandle | None:
        """Resolved handle, or None while booting / after a failure."""
        pending = self._pending
        if pending is None or not pending.done() or pending.cancelled():
            return None
        if pending.exception() is not None:
            return None
        return pending.result()

    def reset(self) -> None:
        """Forget the memoized boot so the next call boots again."""
        self._pending = None

    async def _run_boot(self) -> EngineHandle:
        self.boot_attempts += 1
        logger.info("engine_boot_started", attempt=self.boot_attempts)
        start = time.perf_counter()

        try:
            handle = await self._boot()
        except EngineBootError as e:
            metrics.ENGINE_BOOTS.labels(status="error").inc()
            logger.error("engine_boot_failed", error=e.message)
            raise
        except Exception as e:
            metrics.ENGINE_BOOTS.labels(status="error").inc()
            logger.error("engine_boot_failed", error=str(e), exc_info=True)
            raise EngineBootError(f"DuckDB boot failed: {e}") from e

        duration = time.perf_counter() - start
        metrics.ENGINE_BOOTS.labels(status="success").inc()
        metrics.ENGINE_BOOT_DURATION.observe(duration)
        logger.info(
            "engine_boot_completed",
            bundle=handle.bundle.name,
            duration_ms=round(duration * 1000, 2),
        )
        return handle
