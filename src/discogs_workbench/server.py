"""Static server publishing dataset packs under /data."""

import json
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from . import __version__

logger = structlog.get_logger()

MANIFEST_NAME = "demo_manifest.json"


class PackSummary(BaseModel):
    """A published pack."""

    name: str = Field(description="Pack directory under /data")
    pack_name: str | None = Field(default=None, description="pack_name from the manifest")
    manifest_url: str = Field(description="Manifest path relative to the site root")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(description="Workbench version")
    packs: list[PackSummary] = Field(default_factory=list)


def discover_packs(data_dir: Path) -> list[PackSummary]:
    """Pack directories that contain a manifest."""
    packs = []
    if not data_dir.is_dir():
        return packs
    for manifest_path in sorted(data_dir.glob(f"*/{MANIFEST_NAME}")):
        name = manifest_path.parent.name
        try:
            pack_name = json.loads(manifest_path.read_text()).get("pack_name")
        except (OSError, ValueError) as e:
            logger.warning("pack_manifest_unreadable", path=str(manifest_path), error=str(e))
            pack_name = None
        packs.append(
            PackSummary(
                name=name,
                pack_name=pack_name,
                manifest_url=f"/data/{name}/{MANIFEST_NAME}",
            )
        )
    return packs


def create_app(public_dir: Path) -> FastAPI:
    """Build the pack server for `<public_dir>/data`."""
    data_dir = public_dir / "data"
    app = FastAPI(title="Discogs Workbench pack server", version=__version__)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        healthy = data_dir.is_dir()
        return HealthResponse(
            status="healthy" if healthy else "unhealthy",
            version=__version__,
            packs=discover_packs(data_dir),
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # check_dir=False so the server starts before a pack is published
    app.mount("/data", StaticFiles(directory=data_dir, check_dir=False), name="data")

    logger.info("pack_server_configured", data_dir=str(data_dir))
    return app
