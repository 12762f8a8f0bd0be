"""Terminal output primitives.

Screen writes are cursor-position + clear-line + text. Display widths come
from ``rich.cells`` so wide characters (CJK, emoji) land in the right column.
"""

from __future__ import annotations

import os
import re
import shutil
import sys
from typing import TextIO

from rich.cells import cell_len

from .errors import RenderError

# CSI sequences end with a byte in the 0x40-0x7E range
_CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


class ANSI:
    """ANSI escape codes and width helpers."""

    CLEAR_LINE = "\x1b[2K"
    CLEAR_SCREEN = "\x1b[2J"
    HIDE_CURSOR = "\x1b[?25l"
    SHOW_CURSOR = "\x1b[?25h"
    ALT_SCREEN_ON = "\x1b[?1049h"
    ALT_SCREEN_OFF = "\x1b[?1049l"
    RESET = "\x1b[0m"
    REVERSE = "\x1b[7m"
    DIM = "\x1b[2m"

    @staticmethod
    def goto(col: int, row: int) -> str:
        """Move the cursor to a 1-based (col, row) position."""
        return f"\x1b[{row};{col}H"

    @staticmethod
    def strip(text: str) -> str:
        return _CSI_RE.sub("", text)

    @staticmethod
    def visual_len(text: str) -> int:
        """Number of terminal columns ``text`` occupies."""
        return cell_len(ANSI.strip(text))

    @staticmethod
    def truncate_to_width(text: str, width: int) -> str:
        """Cut plain ``text`` so it fits in ``width`` columns."""
        if width <= 0:
            return ""
        if cell_len(text) <= width:
            return text
        used = 0
        out = []
        for ch in text:
            w = cell_len(ch)
            if used + w > width:
                break
            out.append(ch)
            used += w
        return "".join(out)


class Screen:
    """Render target wrapping a text stream.

    Attributes:
        stream: Where escape sequences and text are written
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def write(self, data: str) -> None:
        try:
            self.stream.write(data)
        except (OSError, ValueError) as exc:
            raise RenderError(f"terminal write failed: {exc}") from exc

    def flush(self) -> None:
        try:
            self.stream.flush()
        except (OSError, ValueError) as exc:
            raise RenderError(f"terminal flush failed: {exc}") from exc

    def size(self) -> tuple[int, int]:
        """Return (rows, cols) of the terminal behind ``stream``."""
        try:
            cols, rows = os.get_terminal_size(self.stream.fileno())
        except (AttributeError, OSError, ValueError):
            cols, rows = shutil.get_terminal_size((80, 24))
        return rows, cols

    def enter(self) -> None:
        self.write(ANSI.ALT_SCREEN_ON + ANSI.CLEAR_SCREEN)
        self.flush()

    def leave(self) -> None:
        self.write(ANSI.RESET + ANSI.SHOW_CURSOR + ANSI.ALT_SCREEN_OFF)
        self.flush()
