"""Dataset pack loader.

A pack is published as:

    /data/<pack_name>/demo_manifest.json
    /data/<pack_name>/<directory>/data.parquet

Loading fetches the manifest, registers each directory's Parquet file with
the engine under a stable virtual filename, and creates one view per
directory. Entries are processed sequentially; the first failure aborts the
load and later entries are never registered.
"""

import re
import time
from typing import Any
from urllib.parse import urljoin

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import metrics
from .engine import EngineHandle
from .errors import ManifestFetchError, ViewRegistrationError
from .vfs import DataProtocol

logger = structlog.get_logger()

COLUMNAR_EXTENSION = "parquet"

# manifest directory -> view name
VIEW_MAP: dict[str, str] = {
    "releases_demo": "releases",
    "release_artists_demo": "release_artists",
    "release_label_xref_demo": "release_label_xref",
    "artist_name_map_demo": "artist_name_map",
    "artists_demo": "artists",
    "artist_aliases_demo": "artist_aliases",
    "artist_memberships_demo": "artist_memberships",
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


class ManifestFile(BaseModel):
    """Manifest entry; row/byte counts are informational only."""

    model_config = ConfigDict(extra="allow")

    path: str | None = None
    rows: int | None = None
    bytes: int | None = None


class Manifest(BaseModel):
    """
    Pack manifest.

    Only `pack_name` drives loading. `files` is kept as published and read
    through `file_entries()`, so a malformed entry never fails the load.
    """

    model_config = ConfigDict(extra="allow")

    pack_name: str = Field(description="Storage location of the pack under /data")
    files: Any = Field(default_factory=dict)

    @field_validator("files", mode="before")
    @classmethod
    def _null_files(cls, value: Any) -> Any:
        return {} if value is None else value

    def file_entries(self) -> dict[str, ManifestFile]:
        """Typed view of `files`; entries that do not fit are left blank."""
        if not isinstance(self.files, dict):
            return {}
        entries = {}
        for name, raw in self.files.items():
            try:
                entries[str(name)] = ManifestFile.model_validate(raw)
            except ValidationError:
                entries[str(name)] = ManifestFile()
        return entries


def pack_file_url(base_url: str, pack_name: str, directory: str) -> str:
    """Absolute URL of a directory's columnar file, resolved against the origin."""
    return urljoin(base_url, f"/data/{pack_name}/{directory}/data.{COLUMNAR_EXTENSION}")


def virtual_filename(directory: str) -> str:
    return f"{directory}.{COLUMNAR_EXTENSION}"


def create_view_sql(view_name: str, filename: str) -> str:
    """CREATE OR REPLACE VIEW statement reading a registered file."""
    if not _IDENTIFIER.match(view_name):
        raise ValueError(f"Invalid view name: {view_name!r}")
    quoted = filename.replace("'", "''")
    return (
        f"CREATE OR REPLACE VIEW {view_name} AS\n"
        f"SELECT * FROM read_parquet('{quoted}');"
    )


async def fetch_manifest(client: httpx.AsyncClient, manifest_url: str) -> Manifest:
    """Fetch and parse the manifest, bypassing caches and following redirects."""
    try:
        response = await client.get(
            manifest_url, headers=NO_CACHE_HEADERS, follow_redirects=True
        )
    except httpx.HTTPError as e:
        raise ManifestFetchError(manifest_url, detail=str(e)) from e

    if not response.is_success:
        raise ManifestFetchError(manifest_url, response.status_code)

    try:
        data: Any = response.json()
        return Manifest.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ManifestFetchError(
            manifest_url, response.status_code, detail=f"invalid manifest: {e}"
        ) from e


async def load_pack(
    handle: EngineHandle,
    manifest_url: str,
    client: httpx.AsyncClient | None = None,
    view_map: dict[str, str] | None = None,
) -> Manifest:
    """
    Load a dataset pack into views.

    Raises:
        ManifestFetchError: manifest missing, non-2xx or not parseable
        ViewRegistrationError: registering a file or creating a view failed
    """
    view_map = VIEW_MAP if view_map is None else view_map
    start = time.perf_counter()

    if client is None:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as own_client:
            manifest = await fetch_manifest(own_client, manifest_url)
    else:
        manifest = await fetch_manifest(client, manifest_url)

    logger.info(
        "pack_manifest_fetched",
        url=manifest_url,
        pack_name=manifest.pack_name,
        files=len(manifest.file_entries()),
    )

    for directory, view_name in view_map.items():
        file_url = pack_file_url(manifest_url, manifest.pack_name, directory)
        filename = virtual_filename(directory)

        try:
            await handle.db.register_file_url(
                filename, file_url, DataProtocol.HTTP, True
            )
            await handle.conn.query(create_view_sql(view_name, filename))
        except Exception as e:
            logger.error(
                "pack_view_failed",
                directory=directory,
                view=view_name,
                url=file_url,
                error=str(e),
            )
            raise ViewRegistrationError(directory, view_name, str(e)) from e

        metrics.VIEWS_REGISTERED.labels(view=view_name).inc()
        logger.info("pack_view_created", directory=directory, view=view_name)

    logger.info(
        "pack_loaded",
        pack_name=manifest.pack_name,
        views=len(view_map),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return manifest
