"""Keyboard events and platform-aware shortcuts."""

import sys
from dataclasses import dataclass

# Terminals never deliver Command, so terminal front-ends always use Control
TERMINAL_PLATFORM = "terminal"


@dataclass(frozen=True)
class KeyPress:
    """A key with its modifiers, independent of the UI toolkit.

    `key` is a lowercase name: a single character, or one of
    "enter", "escape", "up", "down".
    """

    key: str
    ctrl: bool = False
    meta: bool = False
    alt: bool = False
    shift: bool = False

    @classmethod
    def parse(cls, name: str) -> "KeyPress":
        """Parse "ctrl+shift+enter"-style names (the format Textual reports)."""
        parts = name.lower().split("+")
        modifiers = set(parts[:-1])
        return cls(
            key=parts[-1],
            ctrl="ctrl" in modifiers,
            meta="meta" in modifiers or "cmd" in modifiers,
            alt="alt" in modifiers,
            shift="shift" in modifiers,
        )


def uses_meta_key(platform: str | None = None) -> bool:
    """macOS binds shortcuts to Command, everything else to Control."""
    return (platform or sys.platform) == "darwin"


def has_primary_modifier(key: KeyPress, platform: str | None = None) -> bool:
    return key.meta if uses_meta_key(platform) else key.ctrl


def primary_label(platform: str | None = None) -> str:
    return "Cmd" if uses_meta_key(platform) else "Ctrl"


def is_palette_shortcut(key: KeyPress, platform: str | None = None) -> bool:
    return key.key == "k" and has_primary_modifier(key, platform)


def is_run_shortcut(key: KeyPress, platform: str | None = None) -> bool:
    return key.key == "enter" and has_primary_modifier(key, platform)


def hotkey_digit(key: KeyPress) -> str | None:
    """Digit of an Alt+<digit> press, else None."""
    if key.alt and len(key.key) == 1 and key.key.isdigit():
        return key.key
    return None
