"""
Exceptions raised by the DDNS panel core.

Components raise these and let them propagate; only the ControlPanel facade
converts them into failed operation results.
"""

from typing import Any, Optional


class DdnsPanelError(Exception):
    """Base class for every error raised by the panel core."""


class TransportError(DdnsPanelError):
    """No response was received from the remote API, even after retrying."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class ApiError(DdnsPanelError):
    """The remote API answered but rejected the request."""

    def __init__(self, status: int, body: Any = None, message: Optional[str] = None):
        self.status = status
        self.body = body
        if message is None:
            message = _message_from_body(body) or f"Remote API returned HTTP {status}"
        super().__init__(message)


class ValidationError(DdnsPanelError):
    """A business rule rejected the configuration. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StateError(DdnsPanelError):
    """An operation was attempted in a state where it is not allowed."""


def _message_from_body(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return None
