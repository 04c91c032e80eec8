"""Access logging stage with a durable sink and a diagnostic sink.

Key Responsibilities:
    - Build one :class:`AccessLogRecord` per completed request
    - Append every record to the durable log file, one line per request
    - Mirror failure-class requests (status >= 400 by default) to the console
    - Keep sink failures out of the response path

Collaborators:
    - Upstream: ``gateway.app.create_app`` wires sinks and starts/stops the
      file writer from the application lifespan
    - Downstream: ``logging.handlers`` (queue, listener, rotating file),
      ``structlog`` and Prometheus metrics

Side Effects:
    - Writes to the configured log file from a single listener thread
    - Adds the correlation header to every response

Thread Safety:
    - Request handlers only enqueue records; the listener thread is the only
      writer, so lines never interleave
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

import logging
import queue
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from time import perf_counter
from typing import Protocol
from uuid import uuid4

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..observability.metrics import REQUEST_COUNTER, REQUEST_LATENCY
from ..utils.logging import bind_correlation_id, get_logger, reset_correlation_id

logger = get_logger(__name__)

_CLF_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# ==============================================================================
# RECORD MODEL
# ==============================================================================


def _clf_date(moment: datetime) -> str:
    return (
        f"{moment.day:02d}/{_CLF_MONTHS[moment.month - 1]}/{moment.year:04d}:"
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} {moment.strftime('%z')}"
    )


@dataclass(frozen=True, slots=True)
class AccessLogRecord:
    """Immutable description of one completed request."""

    timestamp: datetime
    method: str
    url: str
    http_version: str
    status: int
    content_length: str | None
    referrer: str | None
    user_agent: str | None
    response_time_ms: float
    correlation_id: str | None = None

    def format(self) -> str:
        """Render the durable log line."""
        return (
            f"[{_clf_date(self.timestamp)}] '{self.method} {self.url} HTTP/{self.http_version}' "
            f"{self.status} {self.content_length or '-'} "
            f"'{self.referrer or '-'} {self.user_agent or '-'}' - {self.response_time_ms:.3f} ms"
        )


# ==============================================================================
# SINKS
# ==============================================================================


class AccessLogSink(Protocol):
    """Logging port fed by the access log stage."""

    def record(self, entry: AccessLogRecord) -> None: ...


class FileAccessLogSink:
    """Append-only log file written by a single background listener.

    Records are enqueued without blocking; :meth:`start` attaches a
    :class:`~logging.handlers.QueueListener` that owns the file handler and
    :meth:`stop` flushes whatever is still queued.
    """

    def __init__(self, path: Path, *, max_bytes: int = 0, backup_count: int = 0) -> None:
        self.path = Path(path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        self._queue_handler = QueueHandler(self._queue)
        self._listener: QueueListener | None = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        if self._listener is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            self.path,
            maxBytes=self._max_bytes,
            backupCount=self._backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._listener = QueueListener(self._queue, handler)
        self._listener.start()

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        listener.stop()
        for handler in listener.handlers:
            handler.close()

    def record(self, entry: AccessLogRecord) -> None:
        self._queue_handler.handle(
            logging.makeLogRecord(
                {
                    "name": "mdeforge_store.access",
                    "levelno": logging.INFO,
                    "levelname": "INFO",
                    "msg": entry.format(),
                }
            )
        )


class ConsoleAccessLogSink:
    """Human-facing mirror of failed requests."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger("mdeforge_store.access")

    def record(self, entry: AccessLogRecord) -> None:
        emit = self._logger.error if entry.status >= 500 else self._logger.warning
        emit(
            "http.request.failed",
            method=entry.method,
            url=entry.url,
            status=entry.status,
            response_time_ms=round(entry.response_time_ms, 3),
            content_length=entry.content_length,
        )


class MetricsAccessLogSink:
    def record(self, entry: AccessLogRecord) -> None:
        REQUEST_COUNTER.labels(entry.method, str(entry.status)).inc()
        REQUEST_LATENCY.labels(entry.method).observe(entry.response_time_ms / 1000)


# ==============================================================================
# MIDDLEWARE IMPLEMENTATION
# ==============================================================================


def _request_url(scope: Scope) -> str:
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope.get("root_path", "") + scope["path"]
    query = scope.get("query_string", b"")
    return f"{path}?{query.decode('latin-1')}" if query else path


class AccessLogMiddleware:
    """Record every completed request to the configured sinks."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        sinks: Sequence[AccessLogSink],
        diagnostic_sinks: Sequence[AccessLogSink] = (),
        diagnostic_threshold: int = 400,
        correlation_header: str = "X-Correlation-ID",
    ) -> None:
        self.app = app
        self._sinks = tuple(sinks)
        self._diagnostic_sinks = tuple(diagnostic_sinks)
        self._threshold = diagnostic_threshold
        self._correlation_header = correlation_header

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = perf_counter()
        request_headers = Headers(scope=scope)
        correlation_id = request_headers.get(self._correlation_header) or str(uuid4())
        correlation_tokens = bind_correlation_id(correlation_id)
        status: int | None = None
        content_length: str | None = None
        response_time_ms = 0.0

        async def send_wrapper(message: Message) -> None:
            nonlocal status, content_length, response_time_ms
            if message["type"] == "http.response.start":
                response_time_ms = (perf_counter() - started) * 1000
                response_headers = MutableHeaders(scope=message)
                response_headers.setdefault(self._correlation_header, correlation_id)
                status = message["status"]
                content_length = response_headers.get("content-length")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            try:
                if status is None:
                    logger.debug("access_log.request_aborted", extra={"url": _request_url(scope)})
                else:
                    self.emit(
                        AccessLogRecord(
                            timestamp=datetime.now(UTC),
                            method=scope["method"],
                            url=_request_url(scope),
                            http_version=scope.get("http_version", "1.1"),
                            status=status,
                            content_length=content_length,
                            referrer=request_headers.get("referer")
                            or request_headers.get("referrer"),
                            user_agent=request_headers.get("user-agent"),
                            response_time_ms=response_time_ms,
                            correlation_id=correlation_id,
                        )
                    )
            finally:
                reset_correlation_id(correlation_tokens)

    def emit(self, entry: AccessLogRecord) -> None:
        """Feed ``entry`` to every sink; failures never propagate."""
        for sink in self._sinks:
            self._deliver(sink, entry)
        if entry.status >= self._threshold:
            for sink in self._diagnostic_sinks:
                self._deliver(sink, entry)

    @staticmethod
    def _deliver(sink: AccessLogSink, entry: AccessLogRecord) -> None:
        try:
            sink.record(entry)
        except Exception:
            logger.exception("access_log.sink_failed", extra={"sink": type(sink).__name__})


__all__ = [
    "AccessLogMiddleware",
    "AccessLogRecord",
    "AccessLogSink",
    "ConsoleAccessLogSink",
    "FileAccessLogSink",
    "MetricsAccessLogSink",
]
