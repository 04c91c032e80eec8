from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdeforge_store.config.settings import GatewaySettings, get_settings
from mdeforge_store.gateway.app import create_app


@pytest.fixture(autouse=True)
def _configure_gateway(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("MDE_STATIC_ROOT", str(tmp_path / "artifacts"))
    monkeypatch.setenv("MDE_ACCESS_LOG__LOG_FILE", str(tmp_path / "logs" / "server.log"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> GatewaySettings:
    return get_settings()


@pytest.fixture
def client(settings: GatewaySettings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def log_lines(settings: GatewaySettings):
    def read() -> list[str]:
        path = settings.access_log.log_file
        if not path.exists():
            return []
        return path.read_text(encoding="utf-8").splitlines()

    return read
