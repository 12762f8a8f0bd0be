"""Tests for ANSI helpers and Screen in xi_term/terminal.py.

Covers:
- visual_len() with wide characters and escape codes
- truncate_to_width() never splitting a wide character
- Screen write failures surfacing as RenderError
"""

from __future__ import annotations

import io

import pytest

from xi_term.errors import RenderError
from xi_term.terminal import ANSI, Screen


class TestVisualLen:
    def test_ascii_text(self) -> None:
        assert ANSI.visual_len("hello") == 5

    def test_cjk_characters_count_as_two(self) -> None:
        assert ANSI.visual_len("你好") == 4
        assert ANSI.visual_len("日本語") == 6

    def test_emoji_count_as_two(self) -> None:
        assert ANSI.visual_len("👍") == 2

    def test_escape_codes_are_ignored(self) -> None:
        assert ANSI.visual_len(ANSI.REVERSE + "abc" + ANSI.RESET) == 3
        assert ANSI.visual_len(ANSI.goto(3, 4) + ANSI.CLEAR_LINE) == 0


class TestTruncateToWidth:
    def test_short_text_unchanged(self) -> None:
        assert ANSI.truncate_to_width("abc", 10) == "abc"

    def test_cut_at_width(self) -> None:
        assert ANSI.truncate_to_width("abcdef", 4) == "abcd"

    def test_wide_character_not_split(self) -> None:
        # "日" needs two columns, only one is left
        assert ANSI.truncate_to_width("a日本", 2) == "a"
        assert ANSI.truncate_to_width("a日本", 3) == "a日"

    def test_non_positive_width(self) -> None:
        assert ANSI.truncate_to_width("abc", 0) == ""
        assert ANSI.truncate_to_width("abc", -1) == ""


class TestScreen:
    def test_goto_is_one_based_row_then_col(self) -> None:
        assert ANSI.goto(5, 2) == "\x1b[2;5H"

    def test_write_and_flush(self) -> None:
        stream = io.StringIO()
        screen = Screen(stream)
        screen.write("x")
        screen.flush()
        assert stream.getvalue() == "x"

    def test_closed_stream_raises_render_error(self) -> None:
        stream = io.StringIO()
        stream.close()
        screen = Screen(stream)
        with pytest.raises(RenderError):
            screen.write("x")

    def test_enter_and_leave_toggle_alt_screen(self) -> None:
        stream = io.StringIO()
        screen = Screen(stream)
        screen.enter()
        screen.leave()
        assert stream.getvalue().startswith(ANSI.ALT_SCREEN_ON)
        assert stream.getvalue().endswith(ANSI.ALT_SCREEN_OFF)

    def test_size_without_terminal_uses_fallback(self) -> None:
        """A stream with no file descriptor still reports a usable size."""
        rows, cols = Screen(io.StringIO()).size()
        assert rows > 0
        assert cols > 0
