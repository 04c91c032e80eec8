"""Prometheus metrics for the gateway request pipeline.

Metrics are module-level and registered with the default Prometheus
registry on import. They are fed by the metrics access log sink and exposed
by :func:`register_metrics` when metrics are enabled.
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# ==============================================================================
# METRIC DEFINITIONS
# ==============================================================================

REQUEST_COUNTER = Counter(
    "mdeforge_http_requests_total",
    "Total number of completed HTTP requests",
    ["method", "status"],
)

REQUEST_LATENCY = Histogram(
    "mdeforge_http_request_duration_seconds",
    "Time until the response start was sent",
    ["method"],
)

# ==============================================================================
# REGISTRATION
# ==============================================================================


def register_metrics(app: FastAPI, settings: Any) -> None:
    """Expose the Prometheus scrape endpoint on ``app`` when enabled."""
    if not settings.metrics.enabled:
        return

    @app.get(settings.metrics.path, include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["REQUEST_COUNTER", "REQUEST_LATENCY", "register_metrics"]
