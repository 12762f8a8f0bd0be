"""xi-term terminal application.

The process surface around the ``xi_term`` core:
- Argument parsing and startup (``app``)
- Raw terminal key input via prompt_toolkit (``input_handler``)
- File-based logging configuration (``logs``)

Usage:
    xi-term [-c CORE] [-l LOGFILE] [FILE]
"""

from .app import build_parser, main, run_editor
from .input_handler import InputHandler, translate_key
from .logs import configure_logs

__all__ = [
    "main",
    "build_parser",
    "run_editor",
    "InputHandler",
    "translate_key",
    "configure_logs",
]
