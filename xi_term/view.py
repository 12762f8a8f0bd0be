"""View state mirrored from the backend.

The backend owns the document; the front-end only keeps a cache of the lines
it was sent, applies incremental ``update`` notifications to it and draws
the visible window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .terminal import ANSI, Screen

logger = logging.getLogger(__name__)


def byte_to_char_offset(text: str, offset: int) -> int:
    """Convert a UTF-8 byte offset into ``text`` to a character offset.

    Offsets that fall inside a multi-byte sequence round down to the start
    of that character.
    """
    data = text.encode("utf-8")
    offset = max(0, min(offset, len(data)))
    return len(data[:offset].decode("utf-8", errors="ignore"))


@dataclass
class Line:
    """A rendered line as sent by the backend.

    Attributes:
        text: Line text without the trailing newline
        cursors: Cursor positions as character columns
    """

    text: str = ""
    cursors: list[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: dict[str, Any], text: str | None = None) -> "Line":
        if text is None:
            text = raw.get("text", "")
        text = text.rstrip("\r\n")
        cursors = [byte_to_char_offset(text, c) for c in raw.get("cursor", [])]
        return cls(text=text, cursors=cursors)


class LineCache:
    """Line list rebuilt from xi ``update`` ops.

    Invalid (not yet sent) lines are stored as ``None``.
    """

    def __init__(self) -> None:
        self.lines: list[Line | None] = []

    def __len__(self) -> int:
        return len(self.lines)

    def apply(self, ops: list[dict[str, Any]]) -> None:
        old = self.lines
        old_ix = 0
        new: list[Line | None] = []
        for op in ops:
            kind = op.get("op")
            n = int(op.get("n", 0))
            if kind == "copy":
                new.extend(old[old_ix : old_ix + n])
                old_ix += n
            elif kind == "skip":
                old_ix += n
            elif kind == "invalidate":
                new.extend([None] * n)
            elif kind == "ins":
                new.extend(Line.from_json(raw) for raw in op.get("lines", []))
            elif kind == "update":
                for raw, line in zip(op.get("lines", []), old[old_ix : old_ix + n]):
                    text = line.text if line is not None else ""
                    new.append(Line.from_json(raw, text=text))
                old_ix += n
            else:
                logger.warning("unknown update op: %r", kind)
        self.lines = new


@dataclass
class View:
    """A backend view and the window of it that is on screen.

    Attributes:
        view_id: Identifier assigned by the backend
        file_path: File shown in the view, if any
        scroll: Index of the first visible line
        height: Number of rows available for text
        line_numbers: Whether to draw a line number gutter
    """

    view_id: str
    file_path: str | None = None
    cache: LineCache = field(default_factory=LineCache)
    scroll: int = 0
    height: int = 0
    line_numbers: bool = False
    cursor: tuple[int, int] = (0, 0)
    pristine: bool = True

    def apply_update(self, update: dict[str, Any]) -> None:
        self.cache.apply(update.get("ops", []))
        self.pristine = bool(update.get("pristine", self.pristine))

    def set_height(self, height: int) -> None:
        self.height = max(0, height)

    def scroll_to(self, line: int, col: int) -> bool:
        """Record the backend cursor and keep it visible.

        Returns:
            True if the visible window moved
        """
        self.cursor = (line, col)
        previous = self.scroll
        if line < self.scroll:
            self.scroll = line
        elif self.height and line >= self.scroll + self.height:
            self.scroll = line - self.height + 1
        return self.scroll != previous

    def visible_range(self) -> tuple[int, int]:
        return self.scroll, self.scroll + self.height

    def _gutter_width(self) -> int:
        if not self.line_numbers:
            return 0
        return len(str(max(len(self.cache), 1))) + 1

    def render(self, screen: Screen, cols: int) -> tuple[int, int] | None:
        """Draw the visible lines.

        Returns:
            1-based (col, row) of the first visible cursor, or None
        """
        gutter = self._gutter_width()
        cursor_at: tuple[int, int] | None = None
        for row in range(self.height):
            ix = self.scroll + row
            out = ANSI.goto(1, row + 1) + ANSI.CLEAR_LINE
            line = self.cache.lines[ix] if ix < len(self.cache) else None
            if gutter:
                if ix < len(self.cache):
                    out += ANSI.DIM + str(ix + 1).rjust(gutter - 1) + " " + ANSI.RESET
                else:
                    out += " " * gutter
            if line is not None:
                out += ANSI.truncate_to_width(line.text, cols - gutter)
                if cursor_at is None and line.cursors:
                    col = ANSI.visual_len(line.text[: line.cursors[0]])
                    cursor_at = (gutter + col + 1, row + 1)
            screen.write(out)
        return cursor_at
