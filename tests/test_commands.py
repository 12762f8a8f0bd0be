"""Tests for parse_command and ParseCommandError in xi_term/commands.py."""

from __future__ import annotations

import dataclasses

import pytest

from xi_term.commands import (
    Back,
    Delete,
    NextBuffer,
    Open,
    Out,
    PageDown,
    PageUp,
    ParseCommandError,
    ParseErrorKind,
    PrevBuffer,
    Quit,
    Save,
    SetTheme,
    ToggleLineNumbers,
    parse_command,
)


class TestParseCommand:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("q", Quit()),
            ("quit", Quit()),
            ("  quit  ", Quit()),
            ("s", Save()),
            ("save out.txt", Save("out.txt")),
            ("o", Open()),
            ("open notes.md", Open("notes.md")),
            ("t solarized", SetTheme("solarized")),
            ("theme base16-eighties.dark", SetTheme("base16-eighties.dark")),
            ("b", Back()),
            ("delete", Delete()),
            ("bn", NextBuffer()),
            ("prev-buffer", PrevBuffer()),
            ("pu", PageUp()),
            ("page-down", PageDown()),
            ("ln", ToggleLineNumbers()),
        ],
    )
    def test_known_verbs(self, line: str, expected: object) -> None:
        assert parse_command(line) == expected

    def test_empty_line(self) -> None:
        with pytest.raises(ParseCommandError) as info:
            parse_command("   ")
        assert info.value.kind is ParseErrorKind.EMPTY

    def test_unknown_verb(self) -> None:
        with pytest.raises(ParseCommandError) as info:
            parse_command("hello world")
        assert info.value.kind is ParseErrorKind.UNKNOWN_COMMAND
        assert info.value.verb == "hello"
        assert str(info.value) == "unknown command: hello"

    def test_missing_argument(self) -> None:
        with pytest.raises(ParseCommandError) as info:
            parse_command("theme")
        assert info.value.kind is ParseErrorKind.EXPECTED_ARGUMENT
        assert "theme" in str(info.value)

    def test_argument_to_verb_without_arguments(self) -> None:
        with pytest.raises(ParseCommandError) as info:
            parse_command("q now")
        assert info.value.kind is ParseErrorKind.TOO_MANY_ARGUMENTS
        assert info.value.detail == "now"

    def test_too_many_arguments(self) -> None:
        with pytest.raises(ParseCommandError) as info:
            parse_command("open a b")
        assert info.value.kind is ParseErrorKind.TOO_MANY_ARGUMENTS
        assert info.value.detail == "b"


class TestCommandValues:
    def test_commands_are_immutable(self) -> None:
        cmd = Out("text")
        with pytest.raises(dataclasses.FrozenInstanceError):
            cmd.text = "other"  # type: ignore[misc]

    def test_equality_by_value(self) -> None:
        assert Open("a") == Open("a")
        assert Open("a") != Open("b")
        assert Open() == Open(None)
