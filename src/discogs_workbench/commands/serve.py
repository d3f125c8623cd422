"""Pack server command."""

from pathlib import Path
from typing import Optional

import typer
import uvicorn

from ..config import get_settings
from ..output import print_info
from ..server import create_app


def serve(
    public_dir: Optional[Path] = typer.Option(
        None, "--public", "-p",
        help="Directory containing data/<pack>/ (defaults to ./public)"
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(4321, "--port", help="Bind port"),
) -> None:
    """Serve dataset packs over HTTP at /data for the workbench to load."""
    settings = get_settings(public_dir=public_dir)
    print_info(f"Serving {settings.public_dir / 'data'} at http://{host}:{port}/data")
    uvicorn.run(create_app(settings.public_dir), host=host, port=port)
