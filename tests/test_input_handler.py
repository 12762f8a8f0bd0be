"""Tests for key translation in cli/input_handler.py."""

from __future__ import annotations

import io

import pytest
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys

from cli.input_handler import InputHandler, translate_key
from xi_term.events import Key, KeyEvent


class TestTranslateKey:
    @pytest.mark.parametrize(
        "key, expected",
        [
            (Keys.Enter, KeyEvent(Key.ENTER)),
            (Keys.ControlJ, KeyEvent(Key.ENTER)),
            (Keys.Backspace, KeyEvent(Key.BACKSPACE)),
            (Keys.Delete, KeyEvent(Key.DELETE)),
            (Keys.Left, KeyEvent(Key.LEFT)),
            (Keys.Up, KeyEvent(Key.UP)),
            (Keys.PageDown, KeyEvent(Key.PAGE_DOWN)),
            (Keys.Tab, KeyEvent(Key.TAB)),
            (Keys.Escape, KeyEvent(Key.ESCAPE)),
        ],
    )
    def test_special_keys(self, key: Keys, expected: KeyEvent) -> None:
        assert translate_key(KeyPress(key)) == [expected]

    def test_control_keys(self) -> None:
        assert translate_key(KeyPress(Keys.ControlW)) == [KeyEvent.ctrl("w")]
        assert translate_key(KeyPress(Keys.ControlP)) == [KeyEvent.ctrl("p")]

    @pytest.mark.parametrize("ch", ["a", "Z", " ", "é", "日"])
    def test_printable_characters(self, ch: str) -> None:
        assert translate_key(KeyPress(ch)) == [KeyEvent.char_(ch)]

    def test_bracketed_paste_splits_characters(self) -> None:
        events = translate_key(KeyPress(Keys.BracketedPaste, "ab\r\nc"))
        assert events == [
            KeyEvent.char_("a"),
            KeyEvent.char_("b"),
            KeyEvent(Key.ENTER),
            KeyEvent.char_("c"),
        ]

    def test_unmapped_key(self) -> None:
        assert translate_key(KeyPress(Keys.F5)) == [KeyEvent(Key.UNKNOWN)]


class TestInputHandler:
    @pytest.mark.asyncio
    async def test_start_without_terminal(self) -> None:
        handler = InputHandler(stdin=io.StringIO())
        assert await handler.start() is False
        await handler.stop()
        assert handler.events.empty()
