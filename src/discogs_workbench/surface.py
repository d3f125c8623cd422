"""Display surfaces the workbench reports to."""

from typing import Any, Protocol, Sequence

from rich.console import Console

from .output import build_table, console as default_console, json_safe


class Surface(Protocol):
    """Status line, output area and SQL buffer of a workbench front-end."""

    def set_status(self, message: str) -> None: ...

    def show_output(self, text: str) -> None: ...

    def show_rows(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None: ...

    def get_sql(self) -> str: ...

    def set_sql(self, sql: str) -> None: ...

    def set_read_only(self, read_only: bool) -> None: ...


class BufferSurface:
    """In-memory surface; keeps every status line for inspection."""

    def __init__(self, sql: str = ""):
        self.sql = sql
        self.status = ""
        self.output = ""
        self.statuses: list[str] = []
        self.columns: list[str] = []
        self.rows: list[Sequence[Any]] = []
        self.read_only = False

    def set_status(self, message: str) -> None:
        self.status = message
        self.statuses.append(message)

    def show_output(self, text: str) -> None:
        self.output = text

    def show_rows(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.columns = list(columns)
        self.rows = list(rows)
        self.output = json_safe([dict(zip(columns, row)) for row in rows])

    def get_sql(self) -> str:
        return self.sql

    def set_sql(self, sql: str) -> None:
        self.sql = sql

    def set_read_only(self, read_only: bool) -> None:
        self.read_only = read_only


class ConsoleSurface(BufferSurface):
    """Surface that also prints to a rich console (one-shot CLI runs)."""

    def __init__(
        self,
        sql: str = "",
        console: Console | None = None,
        json_output: bool = False,
        verbose: bool = False,
    ):
        super().__init__(sql)
        self.console = console or default_console
        self.json_output = json_output
        self.verbose = verbose

    def set_status(self, message: str) -> None:
        super().set_status(message)
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]", highlight=False)

    def show_output(self, text: str) -> None:
        super().show_output(text)
        if self.verbose:
            self.console.print(text, highlight=False, markup=False)

    def show_rows(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        super().show_rows(columns, rows)
        if self.json_output:
            print(self.output)
        elif not rows:
            self.console.print("[dim]No rows[/dim]")
        else:
            self.console.print(build_table(columns, rows))
