"""xi-term: a terminal front-end for the xi editor backend.

The backend process owns the document; this package turns key presses into
commands, sends them over the RPC channel and draws what the backend reports.

Usage:
    builder, notifications = TuiServiceBuilder.new()
    client, core_stderr = await spawn("xi-core", builder)
    tui, output = Tui.new(client, notifications)
    tui.handle_cmd(Open("notes.txt"))
    await tui.run(key_events)
"""

from .commands import (
    Command,
    MoveDown,
    MoveLeft,
    MoveRight,
    MoveUp,
    Open,
    Out,
    ParseCommandError,
    ParseErrorKind,
    Quit,
    Save,
    SetTheme,
    parse_command,
)
from .errors import (
    BackendDisconnect,
    BackendError,
    BackendInitError,
    RenderError,
    UnsupportedRequest,
    XiTermError,
)
from .events import Key, KeyEvent
from .prompt import CommandPrompt
from .rpc import Client, spawn
from .terminal import ANSI, Screen
from .tui import Notification, Tui, TuiService, TuiServiceBuilder, map_key
from .view import Line, LineCache, View

__all__ = [
    # Commands
    "Command",
    "Open",
    "Save",
    "SetTheme",
    "MoveUp",
    "MoveDown",
    "MoveLeft",
    "MoveRight",
    "Quit",
    "Out",
    "ParseCommandError",
    "ParseErrorKind",
    "parse_command",
    # Errors
    "XiTermError",
    "RenderError",
    "BackendError",
    "BackendInitError",
    "BackendDisconnect",
    "UnsupportedRequest",
    # Input
    "Key",
    "KeyEvent",
    "CommandPrompt",
    # Backend
    "Client",
    "spawn",
    # Service
    "Tui",
    "TuiService",
    "TuiServiceBuilder",
    "Notification",
    "map_key",
    # Rendering
    "ANSI",
    "Screen",
    "Line",
    "LineCache",
    "View",
]
