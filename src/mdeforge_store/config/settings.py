"""Configuration system for the store gateway.

Settings are sourced from the environment (prefix ``MDE_``, nested fields
separated by ``__``) and an optional ``.env`` file. They are loaded once
before the pipeline is assembled and are never re-read at request time.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HELMET_CONTENT_SECURITY_POLICY = (
    "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
    "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
    "object-src 'none';script-src 'self';script-src-attr 'none';"
    "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
)

EXPLORER_CONTENT_SECURITY_POLICY = (
    "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
    "img-src 'self' data: https:;object-src 'none';"
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://unpkg.com;"
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://unpkg.com;"
    "connect-src 'self'"
)


def _split_sequence(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.replace(",", " ").split() if item.strip()]
    return value


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for application output")
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["password", "token", "secret", "authorization"],
        description="Fields that should be redacted in logs",
    )


class MetricsSettings(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = True
    path: str = Field(default="/metrics", description="HTTP path for Prometheus metrics")


class AccessLogSettings(BaseModel):
    """Durable and diagnostic access log configuration."""

    log_file: Path = Field(default=Path("logs/server.log"))
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0, description="0 disables rotation")
    backup_count: int = Field(default=5, ge=0)
    diagnostic_threshold: int = Field(
        default=400, ge=100, le=599, description="Minimum status mirrored to the console"
    )
    correlation_header: str = Field(default="X-Correlation-ID")


class SecurityHeaderSettings(BaseModel):
    """HTTP hardening header configuration."""

    content_security_policy: str = Field(default=HELMET_CONTENT_SECURITY_POLICY)
    explorer_content_security_policy: str = Field(default=EXPLORER_CONTENT_SECURITY_POLICY)
    explorer_paths: Sequence[str] = Field(
        default_factory=lambda: ["/graphql", "/store/api-docs"],
        description="Path prefixes serving interactive explorers that load CDN assets",
    )
    hsts_max_age: int = Field(default=15552000, description="HSTS max-age in seconds")
    frame_options: str = Field(default="SAMEORIGIN")
    referrer_policy: str = Field(default="no-referrer")

    @model_validator(mode="before")
    @classmethod
    def _normalise_paths(cls, values: dict[str, Any]) -> dict[str, Any]:
        if isinstance(values, dict) and "explorer_paths" in values:
            values["explorer_paths"] = _split_sequence(values["explorer_paths"])
        return values


class CORSSettings(BaseModel):
    """CORS configuration consumed by the FastAPI application."""

    allow_origins: Sequence[str] = Field(default_factory=lambda: ["*"])
    allow_methods: Sequence[str] = Field(
        default_factory=lambda: ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]
    )
    allow_headers: Sequence[str] = Field(default_factory=lambda: ["*"])
    allow_credentials: bool = False
    max_age: int = Field(default=600, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalise_sequences(cls, values: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(values, dict):
            return values
        for field in ("allow_origins", "allow_methods", "allow_headers"):
            if field in values:
                values[field] = _split_sequence(values[field])
        return values

    @model_validator(mode="after")
    def _validate_origins(self) -> CORSSettings:
        if not self.allow_origins:
            raise ValueError("At least one CORS origin must be configured")
        return self


class SecuritySettings(BaseModel):
    """Aggregate security configuration."""

    headers: SecurityHeaderSettings = Field(default_factory=SecurityHeaderSettings)


class GraphQLSettings(BaseModel):
    path: str = "/graphql"
    explorer: bool = Field(default=True, description="Serve GraphiQL on GET requests")


class DocumentationSettings(BaseModel):
    """OpenAPI document metadata and serving path."""

    path: str = "/store/api-docs"
    title: str = "MDEForge Persistence API documentation"
    version: str = "1.0.0"
    description: str = (
        "This is the documentation of persistence api of MDEForge repository! "
        "It uses the OpenAPI specification."
    )
    servers: Sequence[str] = Field(default_factory=lambda: ["http://localhost:3200"])

    @model_validator(mode="before")
    @classmethod
    def _normalise_servers(cls, values: dict[str, Any]) -> dict[str, Any]:
        if isinstance(values, dict) and "servers" in values:
            values["servers"] = _split_sequence(values["servers"])
        return values


class GatewaySettings(BaseSettings):
    """Top-level gateway settings."""

    service_name: str = "mdeforge-store"
    host: str = "0.0.0.0"
    port: int = Field(default=3200, ge=1, le=65535)
    static_root: Path = Field(default=Path("localStorage/artifacts"))
    static_prefix: str = "/files"
    body_limit_bytes: int = Field(default=100 * 1024, gt=0)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    access_log: AccessLogSettings = Field(default_factory=AccessLogSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    graphql: GraphQLSettings = Field(default_factory=GraphQLSettings)
    docs: DocumentationSettings = Field(default_factory=DocumentationSettings)

    model_config = SettingsConfigDict(
        env_prefix="MDE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )


def load_settings(**overrides: Any) -> GatewaySettings:
    """Load gateway settings from the environment, applying explicit overrides."""
    try:
        return GatewaySettings(**overrides)
    except ValidationError as err:
        raise RuntimeError(f"Invalid configuration: {err}") from err


@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    """Cached accessor used by production code."""
    return load_settings()


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
