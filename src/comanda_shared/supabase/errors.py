"""
Errors raised by the remote data gateway.
"""

from __future__ import annotations

from typing import Any

from comanda_shared.constants import NO_ROWS_ERROR_CODE


class GatewayError(Exception):
    """A platform call failed; carries the underlying platform error."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: Any | None = None,
        operation: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.operation = operation

    def __str__(self) -> str:
        prefix = f"[{self.code}] " if self.code else ""
        return f"{prefix}{self.message}"


class NoRowsError(GatewayError):
    """The query matched no row where exactly one was expected."""

    def __init__(self, message: str = "No rows returned", operation: str | None = None):
        super().__init__(message, code=NO_ROWS_ERROR_CODE, operation=operation)


class TransportError(GatewayError):
    """Network failure or timeout talking to the platform."""

    pass
