from pathlib import Path

import pytest
from pydantic import ValidationError

from mdeforge_store.config.settings import (
    CORSSettings,
    GatewaySettings,
    get_settings,
    load_settings,
)


def test_defaults_match_store_service(settings: GatewaySettings):
    assert settings.port == 3200
    assert settings.static_prefix == "/files"
    assert settings.body_limit_bytes == 100 * 1024
    assert settings.docs.path == "/store/api-docs"
    assert settings.docs.servers == ["http://localhost:3200"]
    assert settings.graphql.path == "/graphql"
    assert settings.access_log.diagnostic_threshold == 400
    assert list(settings.cors.allow_origins) == ["*"]


def test_environment_overrides_nested_fields(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("MDE_PORT", "8080")
    monkeypatch.setenv("MDE_CORS__ALLOW_ORIGINS", '["https://forge.example"]')
    monkeypatch.setenv("MDE_ACCESS_LOG__DIAGNOSTIC_THRESHOLD", "500")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.port == 8080
    assert list(settings.cors.allow_origins) == ["https://forge.example"]
    assert settings.access_log.diagnostic_threshold == 500
    assert settings.static_root == tmp_path / "artifacts"


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_invalid_configuration_raises_runtime_error():
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings(port=0)


def test_cors_sequences_accept_delimited_strings():
    cors = CORSSettings(allow_origins="https://a.example, https://b.example")
    assert cors.allow_origins == ["https://a.example", "https://b.example"]


def test_cors_requires_an_origin():
    with pytest.raises(ValidationError):
        CORSSettings(allow_origins=[])
