"""Process-wide logging for the gateway.

Application events go through the standard library ``logging`` module and
are rendered as one JSON object per line on stdout; structlog events share
the same level, redaction rules and output stream.

The request correlation id is kept in structlog's context variables, so the
JSON formatter and the structlog processors read it from the same place.
``AccessLogMiddleware`` binds it for the duration of each request.

Side Effects:
    - ``configure_logging`` replaces the gateway handler on the root logger
      and reconfigures structlog; handlers installed by others are kept
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Mapping
from contextvars import Token
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars, reset_contextvars

from ..config.settings import LoggingSettings

HANDLER_NAME = "mdeforge_store"
REDACTED = "***"
CORRELATION_KEY = "correlation_id"

# Attributes present on every LogRecord; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def redact(value: Any, fields: frozenset[str]) -> Any:
    """Replace values stored under any of ``fields`` (lower-cased) with ``***``."""
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in fields else redact(item, fields)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item, fields) for item in value]
    return value


class JsonFormatter(logging.Formatter):
    """Render a record, its ``extra`` fields and the bound context as JSON."""

    def __init__(self, *, scrub_fields: Iterable[str] = ()) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._scrub_fields = frozenset(field.lower() for field in scrub_fields)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(get_contextvars())
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(redact(payload, self._scrub_fields), sort_keys=True, default=str)


def _redaction_processor(fields: frozenset[str]):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        return redact(event_dict, fields)

    return processor


def configure_logging(settings: LoggingSettings) -> None:
    """Install the JSON handler on the root logger and configure structlog.

    Calling it again replaces the previously installed gateway handler.
    """
    level = logging.getLevelNamesMapping().get(settings.level.upper(), logging.INFO)
    scrub_fields = frozenset(field.lower() for field in settings.scrub_fields)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JsonFormatter(scrub_fields=scrub_fields))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _redaction_processor(scrub_fields),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


# ==============================================================================
# CORRELATION ID
# ==============================================================================


def bind_correlation_id(value: str) -> Mapping[str, Token[Any]]:
    """Bind the request correlation id; pass the result to :func:`reset_correlation_id`."""
    return bind_contextvars(**{CORRELATION_KEY: value})


def reset_correlation_id(tokens: Mapping[str, Token[Any]]) -> None:
    reset_contextvars(**tokens)


def get_correlation_id() -> str | None:
    return get_contextvars().get(CORRELATION_KEY)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "JsonFormatter",
    "bind_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "redact",
    "reset_correlation_id",
]
