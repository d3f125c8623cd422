"""Workbench session commands: the interactive UI and one-shot runs."""

import asyncio
from typing import Optional

import typer
from prometheus_client import start_http_server

from ..catalog import QUERY_CATALOG, Mode, find_query
from ..config import Settings, get_settings
from ..engine import QueryResult
from ..errors import WorkbenchError
from ..output import format_bytes, print_error, print_info, print_table
from ..pack import Manifest
from ..surface import ConsoleSurface
from ..workbench import Workbench
from ..main import setup_logging, state


def open_workbench(
    mode: Optional[Mode] = typer.Option(
        None, "--mode", "-m",
        help="explore (editable SQL, palette, hotkeys) or showcase (featured cards)"
    ),
    site_url: Optional[str] = typer.Option(
        None, "--site-url",
        help="Origin the dataset pack is published on"
    ),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port",
        help="Expose Prometheus metrics on this port"
    ),
) -> None:
    """Open the interactive workbench."""
    settings = get_settings(mode=mode, site_url=site_url)
    debug = state.verbose or settings.debug
    log_path = settings.log_file or settings.data_dir / "workbench.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    if metrics_port:
        start_http_server(metrics_port)

    # Imported lazily: textual is only needed for the interactive UI
    from ..app import run_app

    # The UI owns the terminal, so logs go to a file while it runs
    with log_path.open("a") as log_stream:
        setup_logging(debug=debug, log_file=log_stream)
        try:
            run_app(settings)
        finally:
            setup_logging(debug=debug)


async def _load_and_run(
    settings: Settings, surface: ConsoleSurface
) -> tuple[Manifest, QueryResult | None]:
    workbench = Workbench.from_settings(settings, surface)
    try:
        manifest = await workbench.load_dataset()
        result = await workbench.run_query()
    finally:
        await workbench.shutdown()
    return manifest, result


def run_once(
    sql: Optional[str] = typer.Argument(None, help="SQL to run against the pack views"),
    query_id: Optional[str] = typer.Option(
        None, "--query", "-q",
        help="Run a catalog query by ID instead of SQL"
    ),
    site_url: Optional[str] = typer.Option(
        None, "--site-url",
        help="Origin the dataset pack is published on"
    ),
    max_rows: Optional[int] = typer.Option(
        None, "--max-rows",
        help="Rows to display (default 100)"
    ),
) -> None:
    """Boot the engine, load the dataset pack and run one query.

    Examples:
        discogs-workbench run "SELECT country, count(*) FROM releases GROUP BY 1"

        discogs-workbench --json run --query releases.top_countries
    """
    if bool(sql) == bool(query_id):
        typer.echo("Error: Provide either SQL or --query, not both", err=True)
        raise typer.Exit(1)

    if query_id:
        query = find_query(QUERY_CATALOG, query_id)
        if query is None:
            print_error(f"Query not found: {query_id}")
            raise typer.Exit(1)
        sql = query.sql

    settings = get_settings(site_url=site_url, max_display_rows=max_rows)
    surface = ConsoleSurface(sql=sql or "", json_output=state.json_output, verbose=state.verbose)

    try:
        manifest, result = asyncio.run(_load_and_run(settings, surface))
    except WorkbenchError as e:
        print_error(e.message)
        raise typer.Exit(1)

    if state.json_output:
        return

    if state.verbose:
        print_table(
            [
                {
                    "Directory": directory,
                    "Rows": entry.rows if entry.rows is not None else "",
                    "Size": format_bytes(entry.bytes) if entry.bytes is not None else "",
                }
                for directory, entry in manifest.file_entries().items()
            ],
            columns=["Directory", "Rows", "Size"],
            title=f"Pack {manifest.pack_name}",
        )
    print_info(surface.status)
