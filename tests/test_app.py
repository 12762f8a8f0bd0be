"""Tests for the command line entry point in cli/app.py and cli/logs.py."""

from __future__ import annotations

import io
import logging
import sys
from pathlib import Path
from typing import AsyncIterator, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cli.app import DEFAULT_CORE, _make_screen, build_parser, log_core_errors, main
from cli.logs import WIRE_LOGGER, configure_logs
from xi_term.errors import BackendInitError


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    wire = logging.getLogger(WIRE_LOGGER)
    saved = (list(root.handlers), root.level, list(wire.handlers), wire.propagate)
    yield
    for logger, handlers in ((root, saved[0]), (wire, saved[2])):
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
    root.setLevel(saved[1])
    wire.propagate = saved[3]


class TestBuildParser:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("XI_CORE", raising=False)
        args = build_parser().parse_args([])
        assert args.core == DEFAULT_CORE
        assert args.logfile is None
        assert args.file is None

    def test_core_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XI_CORE", "/opt/xi/xi-core")
        assert build_parser().parse_args([]).core == "/opt/xi/xi-core"

    def test_all_options(self) -> None:
        args = build_parser().parse_args(["-c", "core", "-l", "xi.log", "notes.md"])
        assert (args.core, args.logfile, args.file) == ("core", "xi.log", "notes.md")


class TestConfigureLogs:
    def test_wire_traffic_goes_to_its_own_file(
        self, tmp_path: Path, restore_logging: None
    ) -> None:
        logfile = tmp_path / "xi.log"
        configure_logs(str(logfile))

        logging.getLogger("xi_term.tui").info("opened view")
        logging.getLogger(WIRE_LOGGER).debug('>>> {"method": "edit"}')
        for handler in logging.getLogger().handlers + logging.getLogger(WIRE_LOGGER).handlers:
            handler.flush()

        main_log = logfile.read_text(encoding="utf-8")
        wire_log = (tmp_path / "xi.log.rpc").read_text(encoding="utf-8")
        assert "opened view" in main_log
        assert '"method": "edit"' not in main_log
        assert '"method": "edit"' in wire_log

    def test_no_logfile_writes_nothing(self, tmp_path: Path, restore_logging: None) -> None:
        configure_logs(None)
        logging.getLogger("xi_term.tui").error("dropped")
        assert list(tmp_path.iterdir()) == []


class TestLogCoreErrors:
    @pytest.mark.asyncio
    async def test_lines_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        async def lines() -> AsyncIterator[str]:
            yield "panicked at main.rs"
            yield "second line"

        with caplog.at_level(logging.ERROR, logger="cli.app"):
            await log_core_errors(lines())
        assert [r.getMessage() for r in caplog.records] == [
            "core: panicked at main.rs",
            "core: second line",
        ]


class TestMain:
    def test_output_printed(
        self, capsys: pytest.CaptureFixture[str], restore_logging: None
    ) -> None:
        with patch("cli.app.run_editor", new=AsyncMock(return_value="picked line")):
            assert main(["notes.md"]) == 0
        assert capsys.readouterr().out == "picked line\n"

    def test_no_output(
        self, capsys: pytest.CaptureFixture[str], restore_logging: None
    ) -> None:
        with patch("cli.app.run_editor", new=AsyncMock(return_value=None)):
            assert main(["notes.md"]) == 0
        assert capsys.readouterr().out == ""

    def test_init_failure_exits_nonzero(
        self, capsys: pytest.CaptureFixture[str], restore_logging: None
    ) -> None:
        err = BackendInitError("Failed to initialize the TUI")
        err.__cause__ = BackendInitError("backend exited before the handshake")
        with patch("cli.app.run_editor", new=AsyncMock(side_effect=err)):
            assert main(["notes.md"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Failed to initialize the TUI" in captured.err
        assert "caused by: backend exited before the handshake" in captured.err


class TestMakeScreen:
    """Tests for choosing the stream the editor draws on."""

    def test_piped_stdin_draws_on_controlling_terminal(self) -> None:
        """With stdin consumed, the screen goes to /dev/tty, not stdout."""
        tty_out = io.StringIO()
        with patch("cli.app._open_tty", return_value=tty_out) as open_tty:
            screen, opened = _make_screen(stdin_consumed=True)
        open_tty.assert_called_once_with("w")
        assert screen.stream is tty_out
        assert opened is tty_out

    def test_redirected_stdout_draws_on_controlling_terminal(self) -> None:
        """When stdout is a file, only the output line may reach it."""
        tty_out = io.StringIO()
        fake_stdout = MagicMock()
        fake_stdout.isatty.return_value = False
        with patch("cli.app._open_tty", return_value=tty_out), patch.object(
            sys, "stdout", fake_stdout
        ):
            screen, opened = _make_screen(stdin_consumed=False)
        assert screen.stream is tty_out
        assert opened is tty_out
        fake_stdout.write.assert_not_called()

    def test_no_controlling_terminal_falls_back_to_stderr(self) -> None:
        """Without /dev/tty the screen uses stderr, nothing is opened."""
        with patch("cli.app._open_tty", return_value=None):
            screen, opened = _make_screen(stdin_consumed=True)
        assert screen.stream is sys.stderr
        assert opened is None

    def test_interactive_stdout_is_used_directly(self) -> None:
        """A terminal on stdout with a file argument needs no extra stream."""
        fake_stdout = MagicMock()
        fake_stdout.isatty.return_value = True
        with patch("cli.app._open_tty") as open_tty, patch.object(
            sys, "stdout", fake_stdout
        ):
            screen, opened = _make_screen(stdin_consumed=False)
            assert screen.stream is fake_stdout
        open_tty.assert_not_called()
        assert opened is None
