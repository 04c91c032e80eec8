"""GraphQL endpoint executing operations against an injected schema."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from strawberry.fastapi import GraphQLRouter
from strawberry.http import GraphQLHTTPResponse
from strawberry.types import ExecutionResult


class GatewayGraphQLRouter(GraphQLRouter):
    """Strawberry router returning failures inside a normal response envelope.

    Successful operations return ``{"data": ...}``, partial failures
    ``{"data": ..., "errors": [...]}`` and total failures ``{"errors": [...]}``
    without a ``data`` key.
    """

    async def process_result(self, request: Request, result: ExecutionResult) -> GraphQLHTTPResponse:
        payload: dict[str, Any] = dict(await super().process_result(request, result))
        if payload.get("errors") and payload.get("data") is None:
            payload.pop("data", None)
        return payload  # type: ignore[return-value]


__all__ = ["GatewayGraphQLRouter"]
