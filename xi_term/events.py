"""Keyboard events consumed by the prompt and the merge loop.

Terminal input is translated into a closed set of key classes so every
handler can match on ``Key`` and fall through to an explicit no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Key(Enum):
    """Class of a key press."""

    CHAR = "char"  # printable character in KeyEvent.char
    CTRL = "ctrl"  # Ctrl + KeyEvent.char
    ALT = "alt"  # Alt + KeyEvent.char
    ENTER = "enter"
    BACKSPACE = "backspace"
    DELETE = "delete"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    TAB = "tab"
    ESCAPE = "escape"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class KeyEvent:
    """A single key press.

    Attributes:
        key: The key class
        char: Character for CHAR, CTRL and ALT events (lowercase for CTRL)
    """

    key: Key
    char: str | None = None

    @classmethod
    def char_(cls, ch: str) -> "KeyEvent":
        return cls(Key.CHAR, ch)

    @classmethod
    def ctrl(cls, ch: str) -> "KeyEvent":
        return cls(Key.CTRL, ch.lower())

    def is_ctrl(self, ch: str) -> bool:
        return self.key is Key.CTRL and self.char == ch
