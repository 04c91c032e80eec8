"""Lightweight configuration package exports."""

from __future__ import annotations

from .settings import (
    AccessLogSettings,
    CORSSettings,
    DocumentationSettings,
    GatewaySettings,
    GraphQLSettings,
    LoggingSettings,
    MetricsSettings,
    SecurityHeaderSettings,
    SecuritySettings,
    get_settings,
    load_settings,
)

__all__ = [
    "AccessLogSettings",
    "CORSSettings",
    "DocumentationSettings",
    "GatewaySettings",
    "GraphQLSettings",
    "LoggingSettings",
    "MetricsSettings",
    "SecurityHeaderSettings",
    "SecuritySettings",
    "get_settings",
    "load_settings",
]
