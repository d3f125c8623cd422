"""Pytest configuration and fixtures."""

import asyncio
import os
from pathlib import Path
from typing import Any, Callable

import duckdb
import pytest
import structlog

from discogs_workbench.catalog import Mode
from discogs_workbench.engine import EngineHandle, EngineProvider, ExecutionBundle, QueryResult
from discogs_workbench.pack import Manifest
from discogs_workbench.surface import BufferSurface
from discogs_workbench.workbench import Workbench

MANIFEST_URL = "http://test-site/data/web_demo_pack_v1/demo_manifest.json"


class FakeConnection:
    """Connection stub recording every statement."""

    def __init__(self, result: QueryResult | None = None, delay: float = 0.0):
        self.result = result or QueryResult(["n"], [(1,)])
        self.delay = delay
        self.queries: list[str] = []
        self.fail_with: Exception | None = None

    async def query(self, sql: str) -> QueryResult:
        self.queries.append(sql)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None and not sql.startswith("CREATE OR REPLACE VIEW"):
            raise self.fail_with
        return self.result

    @property
    def view_statements(self) -> list[str]:
        return [q for q in self.queries if q.startswith("CREATE OR REPLACE VIEW")]

    @property
    def user_queries(self) -> list[str]:
        return [q for q in self.queries if not q.startswith("CREATE OR REPLACE VIEW")]


class FakeDB:
    """Engine stub; optionally fails registering the n-th file (1-based)."""

    def __init__(self, fail_at: int | None = None):
        self.fail_at = fail_at
        self.registered: list[tuple[str, str, Any, bool]] = []
        self.terminated = False

    async def register_file_url(self, name: str, url: str, protocol: Any, cacheable: bool) -> None:
        if self.fail_at is not None and len(self.registered) + 1 == self.fail_at:
            raise RuntimeError(f"HTTP 404 while fetching {url}")
        self.registered.append((name, url, protocol, cacheable))

    async def terminate(self) -> None:
        self.terminated = True


def make_handle(conn: FakeConnection | None = None, db: FakeDB | None = None) -> EngineHandle:
    return EngineHandle(
        db=db or FakeDB(),
        conn=conn or FakeConnection(),
        bundle=ExecutionBundle("mvp", threads=1, memory_limit="1GB"),
    )


class CountingBoot:
    """Boot function counting invocations."""

    def __init__(
        self,
        handle: EngineHandle | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.handle = handle or make_handle()
        self.delay = delay
        self.error = error
        self.calls = 0

    async def __call__(self) -> EngineHandle:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.handle


class StaticLoader:
    """Loader stub returning manifests after optional per-call delays."""

    def __init__(self, pack_names: list[str] | None = None, delays: list[float] | None = None,
                 error: Exception | None = None):
        self.pack_names = pack_names or ["web_demo_pack_v1"]
        self.delays = delays or []
        self.error = error
        self.calls = 0

    async def __call__(self, handle: EngineHandle, manifest_url: str) -> Manifest:
        index = self.calls
        self.calls += 1
        if index < len(self.delays):
            await asyncio.sleep(self.delays[index])
        if self.error is not None:
            raise self.error
        name = self.pack_names[min(index, len(self.pack_names) - 1)]
        return Manifest(pack_name=name)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the user's config file, environment and .env."""
    monkeypatch.setattr("discogs_workbench.config.CONFIG_FILE", tmp_path / "home" / "config.yaml")
    for name in list(os.environ):
        if name.startswith("DISCOGS_WORKBENCH_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    yield
    structlog.reset_defaults()


@pytest.fixture
def workbench_factory() -> Callable[..., Workbench]:
    """Build a Workbench over stubs; returns the workbench.

    The stubs are reachable as `wb.surface`, `wb.engine._boot` and
    `wb.engine._boot.handle.conn`.
    """

    def factory(
        mode: Mode = Mode.EXPLORE,
        conn: FakeConnection | None = None,
        boot: CountingBoot | None = None,
        loader: Any = None,
        **kwargs: Any,
    ) -> Workbench:
        boot = boot or CountingBoot(make_handle(conn=conn))
        return Workbench(
            mode=mode,
            surface=BufferSurface(),
            engine=EngineProvider(boot),
            manifest_url=MANIFEST_URL,
            loader=loader or StaticLoader(),
            platform="linux",
            **kwargs,
        )

    return factory


@pytest.fixture
def releases_parquet(tmp_path: Path) -> bytes:
    """A small Parquet file with release rows."""
    path = tmp_path / "releases.parquet"
    con = duckdb.connect()
    try:
        con.execute(
            "COPY (SELECT * FROM (VALUES "
            "(1, 'Blue Train', 'US'), "
            "(2, 'Kind of Blue', 'US'), "
            "(3, 'Jazz a Saint-Germain', 'FR')"
            ") AS t(release_id, title, country)) "
            f"TO '{path.as_posix()}' (FORMAT PARQUET)"
        )
    finally:
        con.close()
    return path.read_bytes()
