"""Commands produced from user input and consumed by the merge loop.

Every command is an immutable dataclass. ``parse_command`` turns a finalized
command-line string into one of them, raising ``ParseCommandError`` with a
user-facing message when it cannot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import XiTermError


@dataclass(frozen=True)
class Open:
    path: str | None = None


@dataclass(frozen=True)
class Save:
    path: str | None = None


@dataclass(frozen=True)
class SetTheme:
    theme: str


@dataclass(frozen=True)
class MoveUp:
    pass


@dataclass(frozen=True)
class MoveDown:
    pass


@dataclass(frozen=True)
class MoveLeft:
    pass


@dataclass(frozen=True)
class MoveRight:
    pass


@dataclass(frozen=True)
class PageUp:
    pass


@dataclass(frozen=True)
class PageDown:
    pass


@dataclass(frozen=True)
class Insert:
    chars: str


@dataclass(frozen=True)
class InsertNewline:
    pass


@dataclass(frozen=True)
class Back:
    """Delete the character before the backend cursor."""


@dataclass(frozen=True)
class Delete:
    """Delete the character under the backend cursor."""


@dataclass(frozen=True)
class ToggleLineNumbers:
    pass


@dataclass(frozen=True)
class NextBuffer:
    pass


@dataclass(frozen=True)
class PrevBuffer:
    pass


@dataclass(frozen=True)
class OpenPrompt:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Out:
    """A finalized command line, verbatim."""

    text: str


Command = Union[
    Open,
    Save,
    SetTheme,
    MoveUp,
    MoveDown,
    MoveLeft,
    MoveRight,
    PageUp,
    PageDown,
    Insert,
    InsertNewline,
    Back,
    Delete,
    ToggleLineNumbers,
    NextBuffer,
    PrevBuffer,
    OpenPrompt,
    Cancel,
    Quit,
    Out,
]


class ParseErrorKind(Enum):
    EMPTY = "empty"
    UNKNOWN_COMMAND = "unknown_command"
    EXPECTED_ARGUMENT = "expected_argument"
    TOO_MANY_ARGUMENTS = "too_many_arguments"


class ParseCommandError(XiTermError):
    """A command line that does not describe a Command.

    Attributes:
        kind: Why parsing failed
        verb: The verb as typed (empty for EMPTY)
        detail: Extra context, e.g. the offending arguments
    """

    def __init__(self, kind: ParseErrorKind, verb: str = "", detail: str = "") -> None:
        self.kind = kind
        self.verb = verb
        self.detail = detail
        super().__init__(self._message())

    def _message(self) -> str:
        if self.kind is ParseErrorKind.EMPTY:
            return "empty command line"
        if self.kind is ParseErrorKind.UNKNOWN_COMMAND:
            return f"unknown command: {self.verb}"
        if self.kind is ParseErrorKind.EXPECTED_ARGUMENT:
            return f"{self.verb}: expected an argument"
        return f"{self.verb}: too many arguments: {self.detail}"


# verb -> (factory, arity) where arity is "none", "optional" or "required"
_VERBS: dict[str, tuple[type, str]] = {
    "q": (Quit, "none"),
    "quit": (Quit, "none"),
    "s": (Save, "optional"),
    "save": (Save, "optional"),
    "o": (Open, "optional"),
    "open": (Open, "optional"),
    "t": (SetTheme, "required"),
    "theme": (SetTheme, "required"),
    "b": (Back, "none"),
    "back": (Back, "none"),
    "d": (Delete, "none"),
    "delete": (Delete, "none"),
    "bn": (NextBuffer, "none"),
    "next-buffer": (NextBuffer, "none"),
    "bp": (PrevBuffer, "none"),
    "prev-buffer": (PrevBuffer, "none"),
    "pu": (PageUp, "none"),
    "page-up": (PageUp, "none"),
    "pd": (PageDown, "none"),
    "page-down": (PageDown, "none"),
    "ln": (ToggleLineNumbers, "none"),
    "line-numbers": (ToggleLineNumbers, "none"),
}


def parse_command(line: str) -> Command:
    """Parse a command line such as ``open notes.txt`` or ``q``.

    Raises:
        ParseCommandError: If the line is empty, the verb is unknown, or
            the arguments do not match the verb.
    """
    parts = line.split()
    if not parts:
        raise ParseCommandError(ParseErrorKind.EMPTY)

    verb, args = parts[0], parts[1:]
    if verb not in _VERBS:
        raise ParseCommandError(ParseErrorKind.UNKNOWN_COMMAND, verb)

    factory, arity = _VERBS[verb]
    if arity == "none":
        if args:
            raise ParseCommandError(
                ParseErrorKind.TOO_MANY_ARGUMENTS, verb, " ".join(args)
            )
        return factory()
    if len(args) > 1:
        raise ParseCommandError(
            ParseErrorKind.TOO_MANY_ARGUMENTS, verb, " ".join(args[1:])
        )
    if arity == "required" and not args:
        raise ParseCommandError(ParseErrorKind.EXPECTED_ARGUMENT, verb)
    return factory(args[0]) if args else factory()
