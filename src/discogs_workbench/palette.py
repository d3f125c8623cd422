"""Command palette: a modal, keyboard- and pointer-driven query selector.

The palette only selects. Committing closes it and hands the entry to
`on_pick(entry, run_immediately)`; it never touches the engine or the SQL
buffer.

Keys while open:
    Escape        close without committing
    Up / Down     move the highlight (clamped, no wraparound)
    Enter         commit highlighted entry, load only
    Shift+Enter   commit highlighted entry, load and run
"""

from enum import Enum
from typing import Any, Callable, Sequence

import structlog

from .catalog import QueryDefinition, search_queries
from .keys import KeyPress

logger = structlog.get_logger()

PickCallback = Callable[[QueryDefinition, bool], Any]


class PaletteState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class CommandPalette:
    """Palette state machine over the active query subset."""

    def __init__(
        self,
        queries: Sequence[QueryDefinition],
        on_pick: PickCallback,
        run_on_click: bool = False,
    ):
        self.queries = list(queries)
        self.on_pick = on_pick
        self.run_on_click = run_on_click

        self.state = PaletteState.CLOSED
        self.search_text = ""
        self.highlighted_index = 0
        self.filtered: list[QueryDefinition] = list(self.queries)

    @property
    def is_open(self) -> bool:
        return self.state == PaletteState.OPEN

    @property
    def help_text(self) -> str:
        if self.run_on_click:
            return "Click = load+run · Enter = load · Shift+Enter = load+run · Esc = close"
        return "Enter = load · Shift+Enter = load+run · Esc = close"

    @property
    def highlighted(self) -> QueryDefinition | None:
        if 0 <= self.highlighted_index < len(self.filtered):
            return self.filtered[self.highlighted_index]
        return None

    def show(self) -> None:
        self.state = PaletteState.OPEN
        self.set_search_text("")

    def hide(self) -> None:
        self.state = PaletteState.CLOSED

    def set_search_text(self, text: str) -> list[QueryDefinition]:
        """Re-filter and reset the highlight to the first row."""
        self.search_text = text
        self.filtered = search_queries(self.queries, text)
        self.highlighted_index = 0
        return self.filtered

    def move(self, delta: int) -> None:
        last = max(len(self.filtered) - 1, 0)
        self.highlighted_index = min(max(self.highlighted_index + delta, 0), last)

    def handle_key(self, key: KeyPress) -> bool:
        """Handle a key while open. Returns True when the key was consumed."""
        if not self.is_open:
            return False

        if key.key == "escape":
            self.hide()
            return True
        if key.key == "down":
            self.move(1)
            return True
        if key.key == "up":
            self.move(-1)
            return True
        if key.key == "enter":
            self.commit(self.highlighted, run_now=key.shift)
            return True
        return False

    def click_row(self, index: int) -> None:
        """Pointer click on a list row."""
        if not self.is_open or not 0 <= index < len(self.filtered):
            return
        self.highlighted_index = index
        self.commit(self.filtered[index], run_now=self.run_on_click)

    def press_backdrop(self, on_panel: bool = False) -> None:
        """Pointer press; only presses outside the panel close the palette."""
        if self.is_open and not on_panel:
            self.hide()

    def commit(self, entry: QueryDefinition | None, run_now: bool) -> None:
        """Close and hand `entry` to on_pick. No entry is a no-op."""
        if entry is None:
            return
        self.hide()
        logger.debug("palette_commit", query_id=entry.id, run_now=run_now)
        self.on_pick(entry, run_now)
