"""Client for the editor backend process.

The backend speaks newline-delimited JSON-RPC over its stdin/stdout:

- Notification: {"method": ..., "params": ...}
- Request:      {"id": n, "method": ..., "params": ...}
- Response:     {"id": n, "result": ...} or {"id": n, "error": ...}

Messages are written synchronously in call order; a single reader task
resolves responses and hands notifications to the frontend built from the
service builder passed to ``spawn``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Protocol

from .errors import (
    BackendDisconnect,
    BackendError,
    BackendInitError,
    UnsupportedRequest,
)

logger = logging.getLogger(__name__)
wire_logger = logging.getLogger(__name__ + ".wire")


class Frontend(Protocol):
    """Receives what the backend sends unprompted."""

    def handle_notification(self, method: str, params: Any) -> None: ...

    def handle_request(self, method: str, params: Any) -> Any: ...

    def handle_close(self) -> None: ...


class FrontendBuilder(Protocol):
    def build(self, client: "Client") -> Frontend: ...


class Client:
    """Handle on a running backend.

    Args:
        writer: Backend stdin (anything with ``write(bytes)``)
        reader: Backend stdout (anything with ``async readline()``)
        builder: Builds the frontend that receives notifications
        process: The backend process, if this client owns it
    """

    def __init__(
        self,
        writer: Any,
        reader: Any,
        builder: FrontendBuilder,
        process: asyncio.subprocess.Process | None = None,
    ) -> None:
        self._writer = writer
        self._reader = reader
        self._process = process
        self._next_id = 0
        self._pending: dict[int, tuple[str, asyncio.Future[Any]]] = {}
        self._closed = False
        self._close_reported = False
        self._read_task: asyncio.Task[None] | None = None
        self._frontend = builder.build(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start reading from the backend. Needs a running event loop."""
        if self._read_task is None:
            self._read_task = asyncio.ensure_future(self._read_loop())

    def notify(self, method: str, params: Any) -> None:
        self._send({"method": method, "params": params})

    def request(self, method: str, params: Any) -> asyncio.Future[Any]:
        """Send a request; the returned future resolves with its result."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        req_id = self._next_id
        self._next_id += 1
        # responses are only read on a later loop iteration
        self._send({"id": req_id, "method": method, "params": params})
        self._pending[req_id] = (method, future)
        future.add_done_callback(lambda f, m=method: self._log_failure(m, f))
        return future

    # xi protocol helpers

    def client_started(
        self, config_dir: str | None = None, client_extras_dir: str | None = None
    ) -> None:
        params: dict[str, Any] = {}
        if config_dir:
            params["config_dir"] = config_dir
        if client_extras_dir:
            params["client_extras_dir"] = client_extras_dir
        self.notify("client_started", params)

    def new_view(self, file_path: str | None = None) -> asyncio.Future[Any]:
        params: dict[str, Any] = {}
        if file_path:
            params["file_path"] = file_path
        return self.request("new_view", params)

    def close_view(self, view_id: str) -> None:
        self.notify("close_view", {"view_id": view_id})

    def save(self, view_id: str, file_path: str) -> None:
        self.notify("save", {"view_id": view_id, "file_path": file_path})

    def set_theme(self, theme_name: str) -> None:
        self.notify("set_theme", {"theme_name": theme_name})

    def edit(self, view_id: str, method: str, params: Any = None) -> None:
        self.notify(
            "edit",
            {
                "method": method,
                "params": params if params is not None else {},
                "view_id": view_id,
            },
        )

    def scroll(self, view_id: str, first: int, last: int) -> None:
        self.edit(view_id, "scroll", [first, last])

    async def shutdown(self) -> None:
        """Close the pipe to the backend and wait for it to exit."""
        self._closed = True
        try:
            self._writer.close()
        except (OSError, RuntimeError, AttributeError):
            pass
        if self._process is not None and self._process.returncode is None:
            try:
                await asyncio.wait_for(self._process.wait(), timeout=2.0)
            except asyncio.TimeoutError:
                self._process.terminate()
                await self._process.wait()
        if self._read_task is not None:
            await asyncio.gather(self._read_task, return_exceptions=True)

    def _send(self, payload: dict[str, Any]) -> None:
        if self._closed:
            raise BackendDisconnect("backend connection is closed")
        line = json.dumps(payload, ensure_ascii=False)
        wire_logger.debug(">>> %s", line)
        try:
            self._writer.write((line + "\n").encode("utf-8"))
        except (OSError, RuntimeError) as exc:
            self._close()
            raise BackendDisconnect(f"failed to write to backend: {exc}") from exc

    async def _read_loop(self) -> None:
        try:
            while True:
                raw = await self._reader.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if line:
                    self._dispatch(line)
        except (OSError, asyncio.IncompleteReadError, BackendDisconnect) as exc:
            logger.error("error talking to backend: %s", exc)
        finally:
            self._close()

    def _dispatch(self, line: str) -> None:
        wire_logger.debug("<<< %s", line)
        try:
            msg = json.loads(line)
        except ValueError:
            logger.warning("ignoring non-protocol output from backend: %s", line)
            return
        if not isinstance(msg, dict):
            logger.warning("ignoring malformed message from backend: %s", line)
            return

        if "id" in msg and "method" in msg:
            self._answer(msg["id"], msg["method"], msg.get("params"))
        elif "id" in msg:
            self._resolve(msg)
        elif "method" in msg:
            self._frontend.handle_notification(msg["method"], msg.get("params"))
        else:
            logger.warning("ignoring malformed message from backend: %s", line)

    def _resolve(self, msg: dict[str, Any]) -> None:
        entry = self._pending.pop(msg["id"], None)
        if entry is None:
            logger.warning("response for unknown request id %r", msg["id"])
            return
        method, future = entry
        if future.done():
            return
        if "error" in msg:
            future.set_exception(BackendError(method, msg["error"]))
        else:
            future.set_result(msg.get("result"))

    def _answer(self, req_id: Any, method: str, params: Any) -> None:
        try:
            result = self._frontend.handle_request(method, params)
        except UnsupportedRequest as exc:
            logger.warning("%s", exc)
            self._send({"id": req_id, "error": str(exc)})
            return
        except Exception as exc:
            logger.exception("failed to answer %s request", method)
            self._send({"id": req_id, "error": f"failed to answer {method}: {exc}"})
            return
        self._send({"id": req_id, "result": result})

    def _close(self) -> None:
        self._closed = True
        pending, self._pending = self._pending, {}
        for _, future in pending.values():
            if not future.done():
                future.set_exception(BackendDisconnect("backend connection closed"))
        if not self._close_reported:
            self._close_reported = True
            self._frontend.handle_close()

    @staticmethod
    def _log_failure(method: str, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("request %s failed: %s", method, exc)


async def stderr_lines(stream: Any) -> AsyncIterator[str]:
    """Yield decoded lines from the backend's stderr until it closes."""
    while True:
        raw = await stream.readline()
        if not raw:
            return
        yield raw.decode("utf-8", errors="replace").rstrip("\r\n")


async def spawn(
    executable: str, builder: FrontendBuilder
) -> tuple[Client, AsyncIterator[str]]:
    """Start the backend and connect a client to it.

    Returns:
        (client, stderr_lines) - the stderr iterator should be drained by
        a separate task.

    Raises:
        BackendInitError: If the executable cannot be started.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise BackendInitError(f"failed to start backend {executable!r}") from exc

    assert process.stdin is not None
    assert process.stdout is not None
    assert process.stderr is not None
    client = Client(process.stdin, process.stdout, builder, process=process)
    client.start()
    return client, stderr_lines(process.stderr)
