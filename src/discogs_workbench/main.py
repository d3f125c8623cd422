"""Main CLI entry point for Discogs Workbench."""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog
import typer

from . import __version__


# Create main app
app = typer.Typer(
    name="discogs-workbench",
    help="Read-only DuckDB query workbench for dataset packs",
    no_args_is_help=True,
)

# Global state
class GlobalState:
    json_output: bool = False
    verbose: bool = False

state = GlobalState()


def setup_logging(debug: bool = False, log_file: TextIO | None = None) -> None:
    """Configure structured logging.

    Logs go to stderr so stdout stays clean for --json, or to the open
    `log_file` stream when a full-screen UI owns the terminal. The caller
    owns that stream and closes it.
    """
    if log_file is not None:
        logger_factory: Any = structlog.WriteLoggerFactory(file=log_file)
    else:
        def logger_factory(*args: Any) -> structlog.PrintLogger:
            return structlog.PrintLogger(file=sys.stderr)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if not debug else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.WARNING if not debug else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"discogs-workbench version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j",
        help="Output as JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show progress and debug logs"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """Discogs Workbench - query demo dataset packs with an embedded DuckDB."""
    state.json_output = json_output
    state.verbose = verbose
    setup_logging(debug=verbose)


# Import and register commands
from .commands import catalog, config_cmd, serve, session

app.add_typer(catalog.app, name="catalog")
app.add_typer(config_cmd.app, name="config")
app.command("open")(session.open_workbench)
app.command("run")(session.run_once)
app.command("serve")(serve.serve)


if __name__ == "__main__":
    app()
