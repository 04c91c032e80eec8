"""Error taxonomy funnelled to the terminal error stage.

GraphQL execution failures are not represented here: they are returned as
data by the GraphQL stage and never reach the error stage.
"""

from __future__ import annotations

from typing import Any

from .models import ErrorEnvelope


class GatewayError(Exception):
    """Base exception that carries the status and message of its envelope."""

    status: int = 500

    def __init__(self, message: str, *, status: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.detail = detail

    def envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(status=self.status, message=self.message, detail=self.detail)


class ClientInputError(GatewayError):
    """Malformed or oversized request input."""

    status = 400


class NotFoundError(GatewayError):
    """No matching route, resource or static file."""

    status = 404


class InternalError(GatewayError):
    """Unanticipated failure; the message is safe to show to clients."""

    status = 500

    def __init__(self, message: str = "Internal Server Error", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


__all__ = ["ClientInputError", "GatewayError", "InternalError", "NotFoundError"]
