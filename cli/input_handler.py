"""Terminal input using prompt_toolkit.

prompt_toolkit handles the terminal complexity:
- Terminal raw mode management
- Escape sequence parsing (distinguishes ESC from arrow keys)
- Bracketed paste

Key presses are translated into ``KeyEvent`` values and pushed onto an
asyncio queue that the Tui merge loop reads. ``None`` is pushed once the
input closes.

Example:
    reader = InputHandler()

    async with reader:
        await tui.run(reader.events)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TextIO

from prompt_toolkit.input import create_input
from prompt_toolkit.input.vt100 import Vt100Input
from prompt_toolkit.keys import Keys

from xi_term.events import Key, KeyEvent

if TYPE_CHECKING:
    from prompt_toolkit.input import Input
    from prompt_toolkit.key_binding import KeyPress

logger = logging.getLogger(__name__)

_SPECIAL_KEYS: dict[str, Key] = {
    Keys.Enter: Key.ENTER,
    Keys.ControlJ: Key.ENTER,
    Keys.Backspace: Key.BACKSPACE,
    Keys.Delete: Key.DELETE,
    Keys.Left: Key.LEFT,
    Keys.Right: Key.RIGHT,
    Keys.Up: Key.UP,
    Keys.Down: Key.DOWN,
    Keys.Home: Key.HOME,
    Keys.End: Key.END,
    Keys.PageUp: Key.PAGE_UP,
    Keys.PageDown: Key.PAGE_DOWN,
    Keys.Tab: Key.TAB,
    Keys.Escape: Key.ESCAPE,
}


def translate_key(key_press: KeyPress) -> list[KeyEvent]:
    """Translate one prompt_toolkit key press into key events.

    A bracketed paste becomes one event per pasted character.
    """
    key = key_press.key
    if key == Keys.BracketedPaste:
        data = key_press.data.replace("\r\n", "\n").replace("\r", "\n")
        return [
            KeyEvent(Key.ENTER) if ch == "\n" else KeyEvent.char_(ch) for ch in data
        ]
    if key in _SPECIAL_KEYS:
        return [KeyEvent(_SPECIAL_KEYS[key])]
    if isinstance(key, str) and key.startswith("c-") and len(key) == 3:
        return [KeyEvent.ctrl(key[2])]
    if isinstance(key, str) and len(key) == 1 and key.isprintable():
        return [KeyEvent.char_(key)]
    return [KeyEvent(Key.UNKNOWN)]


@dataclass
class InputHandler:
    """Reads raw terminal input and queues translated key events.

    Usage:
        handler = InputHandler()

        async with handler:
            event = await handler.events.get()
        # Terminal restored automatically

    Attributes:
        events: Queue of KeyEvent; None once input has closed
        stdin: Terminal to read from (defaults to sys.stdin)
    """

    events: asyncio.Queue[KeyEvent | None] = field(default_factory=asyncio.Queue)
    stdin: TextIO | None = None

    _input: Input | None = field(default=None, init=False, repr=False)
    _running: bool = field(default=False, init=False, repr=False)
    _raw_mode_ctx: Any = field(default=None, init=False, repr=False)
    _attach_ctx: Any = field(default=None, init=False, repr=False)

    def _is_tty(self) -> bool:
        """Check if stdin is a real terminal."""
        try:
            return (self.stdin or sys.stdin).isatty()
        except (ValueError, OSError):
            return False

    def _on_input_ready(self) -> None:
        """Called by prompt_toolkit when input is available."""
        if not self._input or not self._running:
            return

        for key_press in self._input.read_keys():
            for event in translate_key(key_press):
                self.events.put_nowait(event)

        # Force flush so a lone Escape is not held back waiting for more bytes
        if isinstance(self._input, Vt100Input):
            for key_press in self._input.flush_keys():
                for event in translate_key(key_press):
                    self.events.put_nowait(event)

        if self._input.closed:
            logger.info("terminal input closed")
            self._running = False
            self.events.put_nowait(None)

    async def start(self) -> bool:
        """Start reading keys.

        Returns:
            True if started, False if stdin is not a usable terminal.
        """
        if self._running:
            return True

        if not self._is_tty():
            logger.warning("stdin is not a terminal, no key input available")
            return False

        try:
            self._input = create_input(stdin=self.stdin)
            self._raw_mode_ctx = self._input.raw_mode()
            self._raw_mode_ctx.__enter__()
            self._attach_ctx = self._input.attach(self._on_input_ready)
            self._attach_ctx.__enter__()
            self._running = True
            return True
        except (OSError, ValueError) as exc:
            logger.error("failed to start terminal input: %s", exc)
            self._cleanup()
            return False

    async def stop(self) -> None:
        """Stop reading and restore the terminal."""
        self._running = False
        self._cleanup()

    def _cleanup(self) -> None:
        """Clean up contexts in reverse order."""
        if self._attach_ctx:
            try:
                self._attach_ctx.__exit__(None, None, None)
            except (OSError, ValueError):
                pass
            self._attach_ctx = None

        if self._raw_mode_ctx:
            try:
                self._raw_mode_ctx.__exit__(None, None, None)
            except (OSError, ValueError):
                pass
            self._raw_mode_ctx = None

        if self._input:
            try:
                self._input.close()
            except (OSError, ValueError):
                pass
            self._input = None

    async def __aenter__(self) -> "InputHandler":
        """Async context manager entry - starts reading."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit - always restores terminal."""
        await self.stop()
