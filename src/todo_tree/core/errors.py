# src/todo_tree/core/errors.py

from __future__ import annotations


class GatewayError(RuntimeError):
    """A request to the remote task service failed (transport or HTTP status)."""

    def __init__(self, message: str, *, path: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class GatewayUnavailableError(GatewayError):
    """No authenticated client is available (not signed in)."""
