"""Query catalog commands."""

from typing import Optional

import typer

from ..catalog import (
    QUERY_CATALOG,
    Mode,
    active_queries,
    find_query,
    search_queries,
    validate_catalog,
)
from ..config import get_settings
from ..output import (
    console,
    print_dict,
    print_error,
    print_json,
    print_success,
    print_table,
)
from ..main import state


app = typer.Typer(
    name="catalog",
    help="Browse the predefined query catalog",
    no_args_is_help=True,
)


@app.command("list")
def list_queries(
    mode: Optional[Mode] = typer.Option(
        None, "--mode", "-m",
        help="Operating mode (defaults to the configured mode)"
    ),
    search: Optional[str] = typer.Option(
        None, "--search", "-s",
        help="Case-insensitive filter on title, description, tags and group"
    ),
    featured: bool = typer.Option(False, "--featured", help="Only featured queries"),
) -> None:
    """List the queries active in a mode, in catalog order."""
    settings = get_settings(mode=mode)
    queries = search_queries(active_queries(settings.mode), search or "")
    if featured:
        queries = [q for q in queries if q.featured]

    if state.json_output:
        print_json({
            "mode": settings.mode.value,
            "queries": [
                {
                    "id": q.id,
                    "title": q.title,
                    "group": q.group.value,
                    "hotkey": q.hotkey,
                    "featured": q.featured,
                }
                for q in queries
            ],
            "total": len(queries),
        })
        return

    if not queries:
        print("No queries found")
        return

    table_data = []
    for q in queries:
        table_data.append({
            "ID": q.id,
            "Title": q.title,
            "Group": q.group.value,
            "Hotkey": f"Alt+{q.hotkey}" if q.hotkey else "",
            "Featured": q.featured,
        })

    print_table(
        table_data,
        columns=["ID", "Title", "Group", "Hotkey", "Featured"],
        title=f"Queries ({settings.mode.value}, Total: {len(queries)})",
    )


@app.command("show")
def show_query(
    query_id: str = typer.Argument(..., help="Query ID"),
) -> None:
    """Show a query's metadata and SQL."""
    query = find_query(QUERY_CATALOG, query_id)
    if query is None:
        print_error(f"Query not found: {query_id}")
        raise typer.Exit(1)

    modes = sorted(m.value for m in query.modes) if query.modes else ["all"]

    if state.json_output:
        print_json({
            "id": query.id,
            "title": query.title,
            "description": query.description,
            "tags": list(query.tags),
            "group": query.group.value,
            "hotkey": query.hotkey,
            "featured": query.featured,
            "modes": modes,
            "sql": query.sql,
        })
        return

    print_dict({
        "ID": query.id,
        "Title": query.title,
        "Description": query.description,
        "Group": query.group.value,
        "Tags": ", ".join(query.tags),
        "Modes": ", ".join(modes),
        "Hotkey": f"Alt+{query.hotkey}" if query.hotkey else "-",
        "Featured": query.featured,
    })
    console.print(query.sql, markup=False, highlight=False)


@app.command("validate")
def validate() -> None:
    """Check the catalog for duplicate ids and clashing hotkeys."""
    errors = validate_catalog(QUERY_CATALOG)

    if state.json_output:
        print_json({"valid": not errors, "queries": len(QUERY_CATALOG), "errors": errors})
    elif errors:
        for error in errors:
            print_error(error)
    else:
        print_success(f"Catalog OK ({len(QUERY_CATALOG)} queries)")

    if errors:
        raise typer.Exit(1)
