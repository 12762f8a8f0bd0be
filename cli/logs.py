"""Process-wide logging setup.

The terminal is owned by the editor, so logs only ever go to files:

- ``<logfile>``      front-end and backend stderr (``xi_term``, ``cli``, root)
- ``<logfile>.rpc``  raw JSON-RPC traffic (``xi_term.rpc.wire``)
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
WIRE_LOGGER = "xi_term.rpc.wire"


def _file_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logs(logfile: str | None) -> None:
    """Install file handlers once at startup.

    Without a log file everything is discarded.
    """
    root = logging.getLogger()
    if logfile is None:
        root.addHandler(logging.NullHandler())
        return

    main_handler = _file_handler(logfile)
    root.addHandler(main_handler)
    root.setLevel(logging.INFO)

    for name in ("xi_term", "cli"):
        logging.getLogger(name).setLevel(logging.DEBUG)

    wire = logging.getLogger(WIRE_LOGGER)
    wire.addHandler(_file_handler(f"{logfile}.rpc"))
    wire.setLevel(logging.DEBUG)
    wire.propagate = False
