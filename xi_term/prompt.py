"""Command prompt for xi-term.

A single-line editor loosely modelled on vim's command line. The buffer is
a ``str`` so ``cursor`` counts code points and can never land inside a
multi-byte sequence; ``byte_cursor`` gives the UTF-8 offset when a storage
offset is needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .commands import Command, MoveDown, MoveLeft, MoveRight, MoveUp, Out
from .errors import RenderError
from .events import Key, KeyEvent
from .terminal import ANSI, Screen

logger = logging.getLogger(__name__)


@dataclass
class CommandPrompt:
    """Command-line editing state.

    Attributes:
        buffer: The line being edited
        cursor: Character index into ``buffer`` (0 <= cursor <= len(buffer))
        marker: Mode indicator drawn before the buffer
    """

    buffer: str = ""
    cursor: int = 0
    marker: str = ":"

    @property
    def text(self) -> str:
        return self.buffer

    @property
    def byte_cursor(self) -> int:
        return len(self.buffer[: self.cursor].encode("utf-8"))

    def reset(self) -> None:
        self.buffer = ""
        self.cursor = 0

    def handle_input(self, event: KeyEvent) -> Command | None:
        """Process a terminal event for the command prompt."""
        key = event.key
        if key is Key.ENTER:
            return self._finalize()
        elif key is Key.BACKSPACE or event.is_ctrl("h"):
            return self._back()
        elif event.is_ctrl("w"):
            return self._back_word()
        elif key is Key.DELETE:
            return self._delete()
        elif key is Key.LEFT:
            return self._left()
        elif key is Key.RIGHT:
            return self._right()
        elif key is Key.UP:
            return MoveUp()
        elif key is Key.DOWN:
            return MoveDown()
        elif key is Key.CHAR and event.char:
            return self._new_key(event.char)
        return None

    def _left(self) -> Command:
        if self.cursor > 0:
            self.cursor -= 1
        return MoveLeft()

    def _right(self) -> Command:
        if self.cursor < len(self.buffer):
            self.cursor += 1
        return MoveRight()

    def _delete(self) -> None:
        if self.cursor < len(self.buffer):
            self.buffer = self.buffer[: self.cursor] + self.buffer[self.cursor + 1 :]
        return None

    def _back(self) -> None:
        if self.cursor > 0:
            self.buffer = self.buffer[: self.cursor - 1] + self.buffer[self.cursor :]
            self.cursor -= 1
        return None

    def _back_word(self) -> None:
        # Skip the spaces right before the cursor, then stop after the
        # previous space (which is kept) or at the start of the line.
        i = self.cursor
        while i > 0 and self.buffer[i - 1] == " ":
            i -= 1
        while i > 0 and self.buffer[i - 1] != " ":
            i -= 1
        self.buffer = self.buffer[:i] + self.buffer[self.cursor :]
        self.cursor = i
        return None

    def _new_key(self, ch: str) -> None:
        """Gets called when any printable character is pressed."""
        for c in ch:
            if not c.isprintable():
                continue
            self.buffer = self.buffer[: self.cursor] + c + self.buffer[self.cursor :]
            self.cursor += 1
        return None

    def _finalize(self) -> Command:
        return Out(self.buffer)

    def cursor_column(self) -> int:
        """1-based screen column of the cursor."""
        return 1 + ANSI.visual_len(self.marker) + ANSI.visual_len(
            self.buffer[: self.cursor]
        )

    def render(self, screen: Screen, row: int) -> None:
        """Draw the prompt on ``row`` and park the terminal cursor on it."""
        try:
            screen.write(
                f"{ANSI.goto(1, row)}{ANSI.CLEAR_LINE}{self.marker}{self.buffer}"
                f"{ANSI.goto(self.cursor_column(), row)}"
            )
        except RenderError as err:
            logger.error("failed to render status bar: %s", err)
