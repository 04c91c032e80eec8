from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mdeforge_store.config.settings import GatewaySettings


@pytest.fixture
def artifact_root(settings: GatewaySettings) -> Path:
    root = settings.static_root
    (root / "models").mkdir(parents=True, exist_ok=True)
    (root / "models" / "families.ecore").write_text("<ecore:EPackage/>", encoding="utf-8")
    (root.parent / "secret.txt").write_text("do not serve", encoding="utf-8")
    return root


def test_serves_file_under_root(artifact_root: Path, client: TestClient):
    response = client.get("/files/models/families.ecore")
    assert response.status_code == 200
    assert response.text == "<ecore:EPackage/>"


def test_missing_file_returns_not_found_envelope(artifact_root: Path, client: TestClient):
    response = client.get("/files/models/missing.ecore")
    assert response.status_code == 404
    assert response.json() == {"status": 404, "message": "File not found"}


@pytest.mark.parametrize(
    "path",
    [
        "/files/..%2Fsecret.txt",
        "/files/models/..%2F..%2Fsecret.txt",
        "/files/%2e%2e/secret.txt",
    ],
)
def test_traversal_outside_root_is_not_served(artifact_root: Path, client: TestClient, path):
    response = client.get(path)
    assert response.status_code == 404
    assert "do not serve" not in response.text


def test_symlink_escaping_root_is_not_served(artifact_root: Path, client: TestClient):
    (artifact_root / "escape.txt").symlink_to(artifact_root.parent / "secret.txt")
    response = client.get("/files/escape.txt")
    assert response.status_code == 404
    assert "do not serve" not in response.text


def test_write_methods_are_rejected(artifact_root: Path, client: TestClient):
    response = client.post("/files/models/families.ecore")
    assert response.status_code == 405
    assert response.json()["status"] == 405
