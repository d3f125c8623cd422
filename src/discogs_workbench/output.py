"""Output formatting for CLI and result rendering."""

from typing import Any, Sequence
import json

from rich.console import Console
from rich.table import Table
from rich import box


console = Console()
error_console = Console(stderr=True)


def json_safe(data: Any, indent: int | None = 2) -> str:
    """Serialize to JSON, stringifying values JSON has no type for."""
    return json.dumps(data, indent=indent, default=str, ensure_ascii=False)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json_safe(data))


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, dict)):
        return json_safe(value, indent=None)
    return str(value)


def build_table(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    title: str | None = None,
) -> Table:
    """Rich table for a result set."""
    table = Table(title=title, box=box.ROUNDED)
    for col in columns:
        table.add_column(str(col), style="cyan" if col in ("id", "name") else None)
    for row in rows:
        table.add_row(*[format_cell(v) for v in row])
    return table


def print_table(
    data: list[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    """Print a list of dicts as a formatted table."""
    if not data:
        console.print("[dim]No data[/dim]")
        return

    if columns is None:
        columns = list(data[0].keys())

    rows = [[row.get(col, "") for col in columns] for row in data]
    console.print(build_table(columns, rows, title=title))


def print_dict(
    data: dict[str, Any],
    title: str | None = None,
) -> None:
    """Print a single dict as a key-value table."""
    table = Table(title=title, box=box.ROUNDED, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, format_cell(value))

    console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error: {message}[/red]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(size) < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"
