"""Event merge loop for xi-term.

The Tui owns all front-end state (views, command prompt, status line) and is
its only mutator. ``Tui.run`` waits on two queues at once:

- terminal key events, fed by the input reader
- backend notifications, fed by ``TuiService`` from the RPC reader task

Each event is handled to completion before the next one is taken, so a
prompt edit is never half applied. Events from one queue are handled in the
order they arrived; when both queues are ready they are served alternately.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from rich.cells import cell_len

from .commands import (
    Back,
    Cancel,
    Command,
    Delete,
    Insert,
    InsertNewline,
    MoveDown,
    MoveLeft,
    MoveRight,
    MoveUp,
    NextBuffer,
    Open,
    OpenPrompt,
    Out,
    PageDown,
    PageUp,
    ParseCommandError,
    PrevBuffer,
    Quit,
    Save,
    SetTheme,
    ToggleLineNumbers,
    parse_command,
)
from .errors import (
    BackendDisconnect,
    BackendInitError,
    RenderError,
    UnsupportedRequest,
)
from .events import Key, KeyEvent
from .prompt import CommandPrompt
from .rpc import Client
from .terminal import ANSI, Screen
from .view import View

logger = logging.getLogger(__name__)

# Commands forwarded to the backend as ``edit`` methods on the current view
_EDIT_METHODS: dict[type, str] = {
    MoveUp: "move_up",
    MoveDown: "move_down",
    MoveLeft: "move_left",
    MoveRight: "move_right",
    PageUp: "scroll_page_up",
    PageDown: "scroll_page_down",
    InsertNewline: "insert_newline",
    Back: "delete_backward",
    Delete: "delete_forward",
}


@dataclass(frozen=True)
class Notification:
    """A message the backend sent without being asked."""

    method: str
    params: Any


class TuiService:
    """Frontend handed to the RPC client; forwards notifications to the loop."""

    def __init__(self, client: Client, queue: asyncio.Queue[Notification | None]) -> None:
        self.client = client
        self.queue = queue

    def handle_notification(self, method: str, params: Any) -> None:
        self.queue.put_nowait(Notification(method, params))

    def handle_request(self, method: str, params: Any) -> Any:
        if method == "measure_width":
            return [[cell_len(s) for s in req.get("strings", [])] for req in params]
        raise UnsupportedRequest(method)

    def handle_close(self) -> None:
        self.queue.put_nowait(None)


class TuiServiceBuilder:
    """Service factory passed to ``rpc.spawn``."""

    def __init__(self, queue: asyncio.Queue[Notification | None]) -> None:
        self.queue = queue

    @classmethod
    def new(cls) -> tuple["TuiServiceBuilder", asyncio.Queue[Notification | None]]:
        queue: asyncio.Queue[Notification | None] = asyncio.Queue()
        return cls(queue), queue

    def build(self, client: Client) -> TuiService:
        return TuiService(client, self.queue)


def map_key(event: KeyEvent) -> Command | None:
    """Map a key pressed outside command mode to a Command."""
    key = event.key
    if event.is_ctrl("p"):
        return OpenPrompt()
    elif event.is_ctrl("q"):
        return Quit()
    elif event.is_ctrl("s"):
        return Save()
    elif event.is_ctrl("l"):
        return ToggleLineNumbers()
    elif key is Key.UP:
        return MoveUp()
    elif key is Key.DOWN:
        return MoveDown()
    elif key is Key.LEFT:
        return MoveLeft()
    elif key is Key.RIGHT:
        return MoveRight()
    elif key is Key.PAGE_UP:
        return PageUp()
    elif key is Key.PAGE_DOWN:
        return PageDown()
    elif key is Key.ENTER:
        return InsertNewline()
    elif key is Key.BACKSPACE or event.is_ctrl("h"):
        return Back()
    elif key is Key.DELETE:
        return Delete()
    elif key is Key.TAB:
        return Insert("\t")
    elif key is Key.CHAR and event.char:
        return Insert(event.char)
    return None


class Tui:
    """The terminal front-end service.

    Attributes:
        client: Backend client
        notifications: Queue fed by TuiService; None means disconnected
        output: Receives the last finalized output line when the loop ends
        prompt: Present only while in command mode
        pending_out: Last finalized line that was not a command
        terminated: Set once the loop has stopped; never cleared
    """

    def __init__(
        self,
        client: Client,
        notifications: asyncio.Queue[Notification | None],
        output: asyncio.Queue[str],
        screen: Screen | None = None,
    ) -> None:
        self.client = client
        self.notifications = notifications
        self.output = output
        self.screen = screen if screen is not None else Screen()
        self.views: dict[str, View] = {}
        self.current: str | None = None
        self.prompt: CommandPrompt | None = None
        self.pending_out: str | None = None
        self.status = ""
        self.themes: list[str] = []
        self.theme: str | None = None
        self.terminated = False
        self._disconnected = False
        self._delivered = False
        self.rows, self.cols = self.screen.size()

    @classmethod
    def new(
        cls,
        client: Client,
        notifications: asyncio.Queue[Notification | None],
        screen: Screen | None = None,
    ) -> tuple["Tui", asyncio.Queue[str]]:
        """Perform the backend handshake and build the service.

        Returns:
            (tui, output) - ``output`` holds at most one string once
            ``run`` has finished.

        Raises:
            BackendInitError: If the backend is gone or rejects the handshake.
        """
        if client.closed:
            raise BackendInitError("backend exited before the handshake")
        try:
            client.client_started()
        except BackendDisconnect as exc:
            raise BackendInitError("failed to send client_started") from exc
        output: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        return cls(client, notifications, output, screen=screen), output

    @property
    def view(self) -> View | None:
        return self.views.get(self.current) if self.current else None

    @property
    def text_height(self) -> int:
        return max(self.rows - 1, 0)

    # commands

    def handle_cmd(self, cmd: Command) -> None:
        """Apply a command. Backend messages are written before returning."""
        logger.debug("handling command %r", cmd)
        if isinstance(cmd, Open):
            self._open(cmd.path)
        elif isinstance(cmd, SetTheme):
            self.client.set_theme(cmd.theme)
        elif isinstance(cmd, Save):
            self._save(cmd.path)
        elif isinstance(cmd, Insert):
            self._edit("insert", {"chars": cmd.chars})
        elif type(cmd) in _EDIT_METHODS:
            self._edit(_EDIT_METHODS[type(cmd)])
        elif isinstance(cmd, ToggleLineNumbers):
            if self.view is not None:
                self.view.line_numbers = not self.view.line_numbers
        elif isinstance(cmd, NextBuffer):
            self._cycle_view(1)
        elif isinstance(cmd, PrevBuffer):
            self._cycle_view(-1)
        elif isinstance(cmd, OpenPrompt):
            self.prompt = CommandPrompt()
        elif isinstance(cmd, Cancel):
            self.prompt = None
        elif isinstance(cmd, Out):
            self._finalize(cmd.text)
        elif isinstance(cmd, Quit):
            logger.info("quit requested")
            self.terminated = True
        else:
            logger.warning("unhandled command %r", cmd)

    def _finalize(self, text: str) -> None:
        self.prompt = None
        # every finalized line is the output candidate, command or not
        self.pending_out = text
        try:
            cmd = parse_command(text)
        except ParseCommandError as err:
            logger.info("command line is not a command: %s", err)
            self.status = str(err)
            return
        self.status = ""
        self.handle_cmd(cmd)

    def _open(self, path: str | None) -> None:
        future = self.client.new_view(path)
        future.add_done_callback(lambda f: self._on_new_view(path, f))

    def _on_new_view(self, path: str | None, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        if self.terminated:
            logger.debug("ignoring new_view result for %s after shutdown", path)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("failed to open %s: %s", path or "a new view", exc)
            self.status = f"failed to open {path or 'a new view'}: {exc}"
            self.render()
            return
        view_id = str(future.result())
        view = View(view_id, file_path=path)
        view.set_height(self.text_height)
        self.views[view_id] = view
        self.current = view_id
        logger.info("opened view %s for %s", view_id, path)
        self._send_scroll(view)
        self.render()

    def _save(self, path: str | None) -> None:
        view = self.view
        if view is None:
            self.status = "nothing to save"
            return
        if path is not None:
            view.file_path = path
        if view.file_path is None:
            self.status = "no file name: save <path>"
            return
        self.client.save(view.view_id, view.file_path)
        self.status = f"saved {view.file_path}"

    def _edit(self, method: str, params: Any = None) -> None:
        view = self.view
        if view is None:
            logger.debug("no view for edit %s", method)
            return
        self.client.edit(view.view_id, method, params)

    def _cycle_view(self, step: int) -> None:
        if not self.views or self.current is None:
            return
        ids = list(self.views)
        self.current = ids[(ids.index(self.current) + step) % len(ids)]

    def _send_scroll(self, view: View) -> None:
        first, last = view.visible_range()
        self.client.scroll(view.view_id, first, last)

    # events

    def handle_input(self, event: KeyEvent) -> None:
        """Route a key event to the prompt or the normal-mode mapping."""
        if self.prompt is not None:
            if event.key is Key.ESCAPE or event.is_ctrl("c"):
                cmd: Command | None = Cancel()
            else:
                cmd = self.prompt.handle_input(event)
        else:
            cmd = map_key(event)
        if cmd is not None:
            self.handle_cmd(cmd)

    def handle_notification(self, notification: Notification) -> None:
        """Update view state from a backend notification."""
        method, params = notification.method, notification.params or {}
        if method == "update":
            view = self.views.get(params.get("view_id"))
            if view is None:
                logger.warning("update for unknown view %s", params.get("view_id"))
                return
            view.apply_update(params.get("update", {}))
        elif method == "scroll_to":
            view = self.views.get(params.get("view_id"))
            if view is None:
                logger.warning("scroll_to for unknown view %s", params.get("view_id"))
                return
            if view.scroll_to(int(params.get("line", 0)), int(params.get("col", 0))):
                self._send_scroll(view)
        elif method == "available_themes":
            self.themes = list(params.get("themes", []))
        elif method == "theme_changed":
            self.theme = params.get("name")
            logger.info("theme changed to %s", self.theme)
        elif method == "config_changed":
            logger.info("config changed for %s", params.get("view_id"))
        else:
            logger.debug("ignoring notification %s", method)

    # rendering

    def _refresh_size(self) -> None:
        rows, cols = self.screen.size()
        if (rows, cols) == (self.rows, self.cols):
            return
        self.rows, self.cols = rows, cols
        for view in self.views.values():
            view.set_height(self.text_height)
            self._send_scroll(view)

    def _status_line(self) -> str:
        view = self.view
        name = "[scratch]"
        if view is not None:
            name = view.file_path or "[untitled]"
            if not view.pristine:
                name += " [+]"
        text = f" {name}"
        if self.status:
            text += f"  {self.status}"
        return ANSI.truncate_to_width(text, self.cols)

    def render(self) -> None:
        """Redraw the screen. Failures are logged, never raised."""
        try:
            self._refresh_size()
            self.screen.write(ANSI.HIDE_CURSOR)
            cursor_at = None
            if self.view is not None:
                cursor_at = self.view.render(self.screen, self.cols)
            if self.prompt is not None:
                self.prompt.render(self.screen, self.rows)
            else:
                self.screen.write(
                    ANSI.goto(1, self.rows)
                    + ANSI.CLEAR_LINE
                    + ANSI.REVERSE
                    + self._status_line()
                    + ANSI.RESET
                )
                if cursor_at is not None:
                    self.screen.write(ANSI.goto(*cursor_at))
            self.screen.write(ANSI.SHOW_CURSOR)
            self.screen.flush()
        except RenderError as err:
            logger.error("failed to render: %s", err)

    # loop

    def _on_terminal_event(self, event: KeyEvent | None) -> None:
        if event is None:
            logger.info("terminal input closed")
            self.terminated = True
            return
        self.handle_input(event)
        if not self.terminated:
            self.render()

    def _on_notification(self, notification: Notification | None) -> None:
        if notification is None:
            logger.error("backend connection closed")
            self._disconnected = True
            self.terminated = True
            return
        self.handle_notification(notification)
        self.render()

    def _deliver_output(self) -> None:
        if self._delivered:
            return
        self._delivered = True
        if self.pending_out is not None:
            self.output.put_nowait(self.pending_out)

    async def run(self, inputs: asyncio.Queue[KeyEvent | None]) -> None:
        """Run until quit, terminal close or backend disconnect.

        Raises:
            BackendDisconnect: If the backend went away.
        """
        input_task: asyncio.Future[Any] | None = None
        notify_task: asyncio.Future[Any] | None = None
        input_first = True
        try:
            if not self.terminated:
                self.render()
            while not self.terminated:
                if input_task is None:
                    input_task = asyncio.ensure_future(inputs.get())
                if notify_task is None:
                    notify_task = asyncio.ensure_future(self.notifications.get())
                done, _ = await asyncio.wait(
                    {input_task, notify_task}, return_when=asyncio.FIRST_COMPLETED
                )
                order = [input_task, notify_task]
                if not input_first:
                    order.reverse()
                input_first = not input_first
                for task in order:
                    if task not in done or self.terminated:
                        continue
                    if task is input_task:
                        input_task = None
                        self._on_terminal_event(task.result())
                    else:
                        notify_task = None
                        self._on_notification(task.result())
        finally:
            for task in (input_task, notify_task):
                if task is not None:
                    task.cancel()
            self.terminated = True
            self._deliver_output()
        if self._disconnected:
            raise BackendDisconnect("backend connection closed")
