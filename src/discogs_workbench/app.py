"""Textual front-end for the workbench."""

from typing import Any, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click, Key
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    OptionList,
    Static,
    TextArea,
)
from textual.widgets.option_list import Option

from .catalog import Mode
from .config import Settings
from .keys import TERMINAL_PLATFORM, KeyPress
from .output import format_cell
from .palette import CommandPalette
from .sidebar import CatalogRow
from .workbench import Workbench


def _option(row: CatalogRow) -> Option:
    prompt = Text(row.title, style="bold")
    if row.hotkey_label:
        prompt.append(f"  {row.hotkey_label}", style="dim")
    prompt.append(f"\n{row.subtitle}", style="dim")
    return Option(prompt, id=row.query_id)


class PaletteScreen(ModalScreen[None]):
    """Modal view of a CommandPalette; the palette model owns all state."""

    DEFAULT_CSS = """
    PaletteScreen {
        align: center top;
        background: $background 55%;
    }
    #palette-panel {
        width: 80;
        max-height: 80%;
        margin-top: 2;
        border: round $primary;
        background: $surface;
        padding: 0 1;
    }
    #qp-help {
        color: $text-muted;
    }
    #qp-list {
        height: auto;
        max-height: 24;
    }
    """

    def __init__(self, palette: CommandPalette, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.palette = palette

    def compose(self) -> ComposeResult:
        with Vertical(id="palette-panel"):
            yield Input(placeholder="Search queries…", id="qp-input")
            yield Static(self.palette.help_text, id="qp-help")
            yield OptionList(id="qp-list")

    def on_mount(self) -> None:
        self._render_list()
        self.query_one("#qp-input", Input).focus()

    def _render_list(self) -> None:
        options = self.query_one("#qp-list", OptionList)
        options.clear_options()
        options.add_options(
            [_option(CatalogRow.for_query(q)) for q in self.palette.filtered]
        )
        self._sync_highlight()

    def _sync_highlight(self) -> None:
        if self.palette.filtered:
            self.query_one("#qp-list", OptionList).highlighted = self.palette.highlighted_index

    def _after_palette_change(self) -> None:
        if not self.palette.is_open:
            self.dismiss()
        else:
            self._sync_highlight()

    def on_input_changed(self, event: Input.Changed) -> None:
        event.stop()
        self.palette.set_search_text(event.value)
        self._render_list()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.palette.handle_key(KeyPress("enter"))
        self._after_palette_change()

    def on_key(self, event: Key) -> None:
        if event.key not in ("escape", "up", "down", "shift+enter"):
            return
        event.stop()
        event.prevent_default()
        self.palette.handle_key(KeyPress.parse(event.key))
        self._after_palette_change()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        self.palette.click_row(event.option_index)
        self._after_palette_change()

    def on_click(self, event: Click) -> None:
        self.palette.press_backdrop(on_panel=event.widget is not self)
        self._after_palette_change()


class WorkbenchApp(App):
    """Terminal workbench; implements the Surface the controller reports to."""

    TITLE = "Discogs Workbench"

    CSS = """
    #sidebar, #featuredQueries {
        width: 42;
        border-right: solid $primary-darken-2;
    }
    #queryPack {
        height: 1fr;
    }
    .card {
        width: 100%;
        height: auto;
        margin-bottom: 1;
    }
    #sql {
        height: 12;
    }
    #buttons {
        height: auto;
    }
    #status {
        height: 1;
        color: $text-muted;
    }
    #results {
        height: 1fr;
    }
    #out {
        height: auto;
        max-height: 12;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("ctrl+k", "shortcut('ctrl+k')", "Queries", priority=True),
        Binding("ctrl+enter", "shortcut('ctrl+enter')", "Run", priority=True),
    ] + [
        Binding(f"alt+{digit}", f"shortcut('alt+{digit}')", show=False, priority=True)
        for digit in "123456789"
    ]

    def __init__(self, settings: Settings, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.settings = settings
        self.workbench = Workbench.from_settings(
            settings, surface=self, platform=TERMINAL_PLATFORM
        )

    @property
    def explore(self) -> bool:
        return self.workbench.mode == Mode.EXPLORE

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            if self.explore:
                with Vertical(id="sidebar"):
                    yield Input(placeholder="Filter queries…", id="querySearch")
                    yield OptionList(id="queryPack")
            else:
                with VerticalScroll(id="featuredQueries"):
                    rows = self.workbench.cards.rows()
                    if not rows:
                        yield Static("No featured demos found.")
                    for row in rows:
                        yield Button(
                            f"{row.title}\n{row.subtitle}",
                            name=row.query_id,
                            classes="card",
                        )
            with Vertical(id="main"):
                yield TextArea(id="sql")
                if self.explore:
                    with Horizontal(id="buttons"):
                        yield Button("Load dataset", id="btnLoad", variant="primary")
                        yield Button("Run", id="btnRun")
                yield Static(id="status")
                yield DataTable(id="results", zebra_stripes=True)
                yield Static(id="out")
        yield Footer()

    def on_mount(self) -> None:
        self.workbench.mount()
        if self.explore:
            self.sub_title = self.workbench.shortcut_hint
            self._render_sidebar(self.workbench.sidebar.rows())

    async def on_unmount(self) -> None:
        await self.workbench.shutdown()

    def _render_sidebar(self, rows: Sequence[CatalogRow]) -> None:
        options = self.query_one("#queryPack", OptionList)
        options.clear_options()
        options.add_options([_option(row) for row in rows])

    # Surface

    def set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(Text(message))

    def show_output(self, text: str) -> None:
        self.query_one("#out", Static).update(Text(text))

    def show_rows(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        table = self.query_one("#results", DataTable)
        table.clear(columns=True)
        table.add_columns(*columns)
        table.add_rows([[format_cell(v) for v in row] for row in rows])
        self.show_output("")

    def get_sql(self) -> str:
        return self.query_one("#sql", TextArea).text

    def set_sql(self, sql: str) -> None:
        self.query_one("#sql", TextArea).load_text(sql)

    def set_read_only(self, read_only: bool) -> None:
        self.query_one("#sql", TextArea).read_only = read_only

    # Events

    def action_shortcut(self, key: str) -> None:
        self.workbench.handle_key(KeyPress.parse(key))
        if self.workbench.palette.is_open and not isinstance(self.screen, PaletteScreen):
            self.push_screen(PaletteScreen(self.workbench.palette))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btnLoad":
            self.workbench.press_load()
        elif event.button.id == "btnRun":
            self.workbench.press_run()
        elif event.button.has_class("card") and event.button.name:
            self.workbench.cards.click(event.button.name)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "querySearch":
            self._render_sidebar(self.workbench.sidebar.set_search_text(event.value))

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id == "queryPack" and event.option.id:
            self.workbench.sidebar.click(event.option.id)


def run_app(settings: Settings) -> None:
    """Run the terminal workbench until the user quits."""
    WorkbenchApp(settings).run()
