"""xi-term command line entry point.

Usage:
    xi-term [-c CORE] [-l LOGFILE] [FILE]
    some-command | xi-term > result.txt

Without FILE, standard input is read fully and edited as a scratch file.
A line finalized on the command prompt that is not a command is printed to
standard output when the editor exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import tempfile
from typing import AsyncIterator, TextIO

from rich.console import Console
from rich.markup import escape

from xi_term import (
    BackendDisconnect,
    BackendInitError,
    Open,
    Screen,
    SetTheme,
    Tui,
    TuiServiceBuilder,
    XiTermError,
    spawn,
)

from .input_handler import InputHandler
from .logs import configure_logs

logger = logging.getLogger(__name__)

DEFAULT_CORE = "xi-core"
DEFAULT_THEME = "base16-eighties.dark"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xi-term", description="The Xi Editor")
    parser.add_argument(
        "-c",
        "--core",
        default=os.environ.get("XI_CORE", DEFAULT_CORE),
        help="Specify binary to use for the backend",
    )
    parser.add_argument("-l", "--logfile", help="Log file location")
    parser.add_argument("file", nargs="?", help="File to edit")
    return parser


async def log_core_errors(lines: AsyncIterator[str]) -> None:
    """Drain the backend's stderr into the log."""
    async for msg in lines:
        logger.error("core: %s", msg)


def _write_scratch_file(content: str) -> str:
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", suffix=".txt", prefix="xi-term-", delete=False
    ) as temp_file:
        temp_file.write(content)
    return temp_file.name


def _open_tty(mode: str = "r") -> TextIO | None:
    try:
        return open("/dev/tty", mode, encoding="utf-8")
    except OSError:
        return None


def _make_screen(stdin_consumed: bool) -> tuple[Screen, TextIO | None]:
    """Pick where to draw the editor.

    Standard output is only drawn on when it is the terminal and stdin was
    not consumed; otherwise it carries nothing but the final output line.

    Returns:
        (screen, opened) - ``opened`` is a stream the caller must close
    """
    if not stdin_consumed and sys.stdout.isatty():
        return Screen(), None
    tty_out = _open_tty("w")
    if tty_out is None:
        logger.warning("no controlling terminal, drawing on stderr")
        return Screen(sys.stderr), None
    return Screen(tty_out), tty_out


async def run_editor(args: argparse.Namespace, stdin_text: str | None) -> str | None:
    """Run one editing session.

    Returns:
        The finalized output line, if any.

    Raises:
        BackendInitError: If the backend cannot be started or initialized.
    """
    logger.info("starting %s", args.core)
    tui_builder, core_events = TuiServiceBuilder.new()
    client, core_stderr = await spawn(args.core, tui_builder)

    error_logging = asyncio.ensure_future(log_core_errors(core_stderr))
    logger.info("starting logging backend errors")

    scratch_path: str | None = None
    tty: TextIO | None = None
    screen, tty_out = _make_screen(stdin_text is not None)
    try:
        logger.info("initializing the TUI")
        try:
            tui, out = Tui.new(client, core_events, screen=screen)
        except BackendInitError as exc:
            raise BackendInitError("Failed to initialize the TUI") from exc

        if stdin_text is not None:
            scratch_path = _write_scratch_file(stdin_text)
            tui.handle_cmd(Open(scratch_path))
            # stdin was consumed, keys come from the controlling terminal
            tty = _open_tty()
        else:
            tui.handle_cmd(Open(args.file))
        tui.handle_cmd(SetTheme(DEFAULT_THEME))

        logger.info("running the TUI event loop")
        reader = InputHandler(stdin=tty)
        screen.enter()
        try:
            if not await reader.start():
                reader.events.put_nowait(None)
            await tui.run(reader.events)
        except BackendDisconnect as err:
            logger.error("%s", err)
        finally:
            await reader.stop()
            screen.leave()

        return None if out.empty() else out.get_nowait()
    finally:
        await client.shutdown()
        error_logging.cancel()
        if tty is not None:
            tty.close()
        if tty_out is not None:
            tty_out.close()
        if scratch_path is not None:
            os.unlink(scratch_path)


def _report(console: Console, err: BaseException) -> None:
    console.print(f"[bold red]error:[/bold red] {escape(str(err))}", highlight=False)
    logger.error("error: %s", err)
    cause = err.__cause__ or err.__context__
    while cause is not None:
        console.print(f"caused by: {cause}", markup=False, highlight=False)
        logger.error("caused by: %s", cause)
        cause = cause.__cause__ or cause.__context__


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logs(args.logfile)

    console = Console(stderr=True)
    try:
        stdin_text = sys.stdin.read() if args.file is None else None
        out = asyncio.run(run_editor(args, stdin_text))
    except (XiTermError, OSError) as err:
        _report(console, err)
        console.print_exception()
        logger.exception("unrecoverable startup error")
        return 1

    if out is not None:
        print(out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
