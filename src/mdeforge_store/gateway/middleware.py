"""Cross-cutting request stages of the gateway pipeline.

Key Responsibilities:
    - Hardening headers on every response (security stage)
    - Request payload decoding with a size limit (body decode stage)

Collaborators:
    - Upstream: ``gateway.app.create_app`` assembles the stages in order
    - Downstream: Routing stages and domain collaborators read
      ``request.state.parsed_body``

Thread Safety:
    - Stages hold only immutable configuration captured at startup
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import Request
from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..config.settings import SecurityHeaderSettings
from .errors import ClientInputError

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
JSON_MEDIA_TYPE = "application/json"

# ==============================================================================
# SECURITY STAGE
# ==============================================================================


def _hardening_headers(cfg: SecurityHeaderSettings, policy: str) -> tuple[tuple[str, str], ...]:
    return (
        ("Content-Security-Policy", policy),
        ("Cross-Origin-Opener-Policy", "same-origin"),
        ("Cross-Origin-Resource-Policy", "same-origin"),
        ("Origin-Agent-Cluster", "?1"),
        ("Referrer-Policy", cfg.referrer_policy),
        ("Strict-Transport-Security", f"max-age={cfg.hsts_max_age}; includeSubDomains"),
        ("X-Content-Type-Options", "nosniff"),
        ("X-DNS-Prefetch-Control", "off"),
        ("X-Download-Options", "noopen"),
        ("X-Frame-Options", cfg.frame_options),
        ("X-Permitted-Cross-Domain-Policies", "none"),
        ("X-XSS-Protection", "0"),
    )


class SecurityHeadersMiddleware:
    """Attach hardening headers to every response without overriding handlers."""

    def __init__(self, app: ASGIApp, *, headers_config: SecurityHeaderSettings) -> None:
        self.app = app
        self._headers = _hardening_headers(headers_config, headers_config.content_security_policy)
        self._explorer_headers = _hardening_headers(
            headers_config, headers_config.explorer_content_security_policy
        )
        self._explorer_paths: Sequence[str] = tuple(
            path.rstrip("/") for path in headers_config.explorer_paths
        )

    def _is_explorer(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self._explorer_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = self._explorer_headers if self._is_explorer(scope["path"]) else self._headers

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in headers:
                    response_headers.setdefault(name, value)
                if "x-powered-by" in response_headers:
                    del response_headers["x-powered-by"]
            await send(message)

        await self.app(scope, receive, send_with_headers)


# ==============================================================================
# BODY DECODE STAGE
# ==============================================================================


def _media_type(headers: Headers) -> str:
    return headers.get("content-type", "").split(";", 1)[0].strip().lower()


def _is_json(media_type: str) -> bool:
    return media_type == JSON_MEDIA_TYPE or (
        media_type.startswith("application/") and media_type.endswith("+json")
    )


def _is_decodable(media_type: str) -> bool:
    return _is_json(media_type) or media_type == FORM_MEDIA_TYPE


class BodyDecodeMiddleware(BaseHTTPMiddleware):
    """Decode JSON and form-encoded payloads onto ``request.state.parsed_body``.

    The raw body stays readable by downstream handlers. Failures raise
    :class:`ClientInputError` for the error stage to render. Decodable bodies
    are counted while they are received, so a body without ``Content-Length``
    is rejected as soon as it passes the limit.
    """

    def __init__(self, app: ASGIApp, *, limit: int) -> None:
        super().__init__(app)
        self._limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not _is_decodable(_media_type(Headers(scope=scope))):
            await super().__call__(scope, receive, send)
            return

        received = 0

        async def receive_with_limit() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self._limit:
                    raise self._too_large()
            return message

        await super().__call__(scope, receive_with_limit, send)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.parsed_body = await self.decode(request)
        return await call_next(request)

    async def decode(self, request: Request) -> Any:
        media_type = _media_type(request.headers)
        if not _is_decodable(media_type):
            return None

        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                length = int(declared)
            except ValueError:
                raise ClientInputError("Invalid Content-Length header") from None
            if length > self._limit:
                raise self._too_large()
        elif "transfer-encoding" not in request.headers:
            return None

        body = await request.body()
        if _is_json(media_type):
            return await self._decode_json(request, body)
        return await self._decode_form(request)

    def _too_large(self) -> ClientInputError:
        return ClientInputError("Request entity too large", detail={"limit": self._limit})

    async def _decode_json(self, request: Request, body: bytes) -> Any:
        if not body.strip():
            return {}
        try:
            payload = await request.json()
        except (ValueError, RecursionError):
            # Deeply nested arrays exhaust the decoder's recursion limit.
            raise ClientInputError("Malformed JSON body") from None
        if not isinstance(payload, (dict, list)):
            raise ClientInputError("JSON body must be an object or an array")
        return payload

    async def _decode_form(self, request: Request) -> dict[str, Any]:
        form = await request.form()
        payload: dict[str, Any] = {}
        for key, value in form.multi_items():
            if key not in payload:
                payload[key] = value
            elif isinstance(payload[key], list):
                payload[key].append(value)
            else:
                payload[key] = [payload[key], value]
        return payload


__all__ = [
    "BodyDecodeMiddleware",
    "FORM_MEDIA_TYPE",
    "JSON_MEDIA_TYPE",
    "SecurityHeadersMiddleware",
]
