"""Terminal error stage of the request pipeline.

Every failure surfaced by an earlier stage ends up in :func:`error_response`,
whether it arrives as an exception handled by FastAPI (route level) or as an
exception escaping the middleware stack (pipeline level, caught by
:class:`ErrorStage`). The mapping is deterministic:

    ClientInputError        -> 400
    NotFoundError           -> 404
    other GatewayError      -> its status
    HTTPException           -> its status, detail as message
    RequestValidationError  -> 400 with the validation errors as detail
    anything else           -> 500 with a generic message

Internal details of unexpected errors are logged, never returned.
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..utils.logging import get_logger
from .errors import GatewayError, InternalError
from .models import ErrorEnvelope

logger = get_logger(__name__)

_BODYLESS_STATUSES = frozenset({204, 304})

# ==============================================================================
# ERROR MAPPING
# ==============================================================================


def envelope_for(exc: BaseException) -> ErrorEnvelope:
    """Map any exception onto the envelope returned to the client."""
    if isinstance(exc, GatewayError):
        return exc.envelope()
    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status=400,
            message="Request validation failed",
            detail=jsonable_encoder(exc.errors()),
        )
    if isinstance(exc, StarletteHTTPException):
        return ErrorEnvelope(status=exc.status_code, message=str(exc.detail))
    return InternalError().envelope()


def _log_failure(envelope: ErrorEnvelope, exc: BaseException) -> None:
    if envelope.status >= 500:
        logger.error(
            "gateway.error",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"status": envelope.status, "error_type": type(exc).__name__},
        )
    else:
        logger.info(
            "gateway.client_error",
            extra={"status": envelope.status, "error_message": envelope.message},
        )


def error_response(exc: BaseException) -> Response:
    """Log ``exc`` and render it as the single response for the request."""
    envelope = envelope_for(exc)
    _log_failure(envelope, exc)
    headers = getattr(exc, "headers", None)
    if envelope.status in _BODYLESS_STATUSES:
        return Response(status_code=envelope.status, headers=headers)
    return JSONResponse(envelope.as_json(), status_code=envelope.status, headers=headers)


async def handle_exception(_: Request, exc: Exception) -> Response:
    return error_response(exc)


def install_error_handlers(app: FastAPI) -> None:
    """Route every exception FastAPI sees through :func:`error_response`."""
    app.add_exception_handler(GatewayError, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    # Unhandled errors in a mounted domain app still get the JSON envelope.
    app.add_exception_handler(Exception, handle_exception)


# ==============================================================================
# MIDDLEWARE IMPLEMENTATION
# ==============================================================================


class ErrorStage:
    """Catch-all guard guaranteeing exactly one response per request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except ClientDisconnect:
            logger.debug("gateway.client_disconnected", extra={"path": scope["path"]})
            return
        except Exception as exc:
            if response_started:
                logger.error(
                    "gateway.error.after_response_start",
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra={"path": scope["path"]},
                )
                return
            await error_response(exc)(scope, receive, send_wrapper)
            return

        if not response_started:
            exc = InternalError()
            logger.error("gateway.error.no_response", extra={"path": scope["path"]})
            await error_response(exc)(scope, receive, send_wrapper)


__all__ = [
    "ErrorStage",
    "envelope_for",
    "error_response",
    "handle_exception",
    "install_error_handlers",
]
