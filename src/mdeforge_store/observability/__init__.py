"""Observability helpers for the gateway application."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ..utils.logging import configure_logging
from .metrics import register_metrics

if TYPE_CHECKING:  # pragma: no cover - import hints only
    from fastapi import FastAPI

    from mdeforge_store.config.settings import GatewaySettings

__all__ = ["setup_observability"]

logger = structlog.get_logger(__name__)


def setup_observability(app: FastAPI, settings: GatewaySettings) -> None:
    """Configure logging and metrics for the app."""
    configure_logging(settings.logging)
    register_metrics(app, settings)
    logger.info(
        "observability.configured",
        service=settings.service_name,
        metrics=settings.metrics.enabled,
    )
