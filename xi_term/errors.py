"""Exception hierarchy for the terminal front-end.

- ParseCommandError lives in commands.py next to the parser (recoverable)
- RenderError: terminal write failure (recoverable, logged)
- BackendInitError: handshake or view setup failed (fatal)
- BackendDisconnect: RPC channel closed (fatal, never retried)
"""

from __future__ import annotations


class XiTermError(Exception):
    """Base class for all front-end errors."""


class RenderError(XiTermError):
    """Writing to the terminal failed."""


class BackendError(XiTermError):
    """The backend answered a request with an error payload."""

    def __init__(self, method: str, error: object) -> None:
        super().__init__(f"backend error for {method}: {error}")
        self.method = method
        self.error = error


class BackendInitError(XiTermError):
    """The backend handshake or initial view setup could not complete."""


class BackendDisconnect(XiTermError):
    """The RPC channel to the backend closed."""


class UnsupportedRequest(XiTermError):
    """The backend sent a request this front-end does not answer."""

    def __init__(self, method: str) -> None:
        super().__init__(f"unsupported request: {method}")
        self.method = method
