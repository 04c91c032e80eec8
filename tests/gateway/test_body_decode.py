import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import JSONResponse

from mdeforge_store.config.settings import load_settings
from mdeforge_store.gateway.app import create_app
from mdeforge_store.gateway.errors import ClientInputError
from mdeforge_store.gateway.middleware import BodyDecodeMiddleware
from mdeforge_store.gateway.routing import DomainRoute


class EchoCollaborator:
    """Return the decoded payload and the raw body it received."""

    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self, scope, receive, send):
        self.calls += 1
        request = Request(scope, receive)
        raw = await request.body()
        payload = {
            "parsed": getattr(request.state, "parsed_body", None),
            "raw": raw.decode("utf-8"),
        }
        await JSONResponse(payload)(scope, receive, send)


@pytest.fixture
def echo() -> EchoCollaborator:
    return EchoCollaborator()


@pytest.fixture
def echo_client(settings, echo):
    app = create_app(settings, routes=[DomainRoute("/echo", echo)])
    with TestClient(app) as client:
        yield client


def test_json_body_reaches_collaborator_unchanged(echo_client: TestClient):
    payload = {"name": "Families", "tags": ["ecore", "uml"], "size": 3}
    raw = json.dumps(payload)

    response = echo_client.post(
        "/echo", content=raw, headers={"content-type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"parsed": payload, "raw": raw}


def test_vendor_json_media_type_is_decoded(echo_client: TestClient):
    response = echo_client.post(
        "/echo", content=b"[1, 2]", headers={"content-type": "application/vnd.api+json"}
    )
    assert response.json()["parsed"] == [1, 2]


def test_form_body_collects_repeated_keys(echo_client: TestClient):
    response = echo_client.post(
        "/echo",
        content=b"tag=a&tag=b&name=model",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )
    assert response.json()["parsed"] == {"tag": ["a", "b"], "name": "model"}


def test_other_media_types_pass_through(echo_client: TestClient):
    response = echo_client.post(
        "/echo", content=b"plain text", headers={"content-type": "text/plain"}
    )
    assert response.json() == {"parsed": None, "raw": "plain text"}


def test_blank_json_body_decodes_to_empty_object(echo_client: TestClient):
    response = echo_client.post(
        "/echo", content=b"  ", headers={"content-type": "application/json"}
    )
    assert response.json()["parsed"] == {}


def test_malformed_json_is_rejected_before_dispatch(echo_client: TestClient, echo):
    response = echo_client.post(
        "/echo", content=b'{"name": ', headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"status": 400, "message": "Malformed JSON body"}
    assert echo.calls == 0


@pytest.mark.parametrize(
    "body",
    ["[" * 60000, "[" * 50000 + "]" * 50000],
    ids=["unterminated", "balanced"],
)
def test_deeply_nested_json_is_malformed(echo_client: TestClient, echo, body: str):
    response = echo_client.post(
        "/echo", content=body, headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"status": 400, "message": "Malformed JSON body"}
    assert echo.calls == 0


def test_scalar_json_is_rejected(echo_client: TestClient, echo):
    response = echo_client.post(
        "/echo", content=b"42", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert echo.calls == 0


def test_oversized_body_is_rejected(echo):
    settings = load_settings(body_limit_bytes=16)
    app = create_app(settings, routes=[DomainRoute("/echo", echo)])
    with TestClient(app) as client:
        response = client.post(
            "/echo",
            content=json.dumps({"name": "x" * 64}),
            headers={"content-type": "application/json"},
        )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Request entity too large"
    assert body["detail"] == {"limit": 16}
    assert echo.calls == 0


def test_malformed_json_on_store_route(client: TestClient):
    response = client.post(
        "/store/user", content=b"{oops", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Malformed JSON body"


def test_chunked_body_over_limit_is_rejected(echo):
    settings = load_settings(body_limit_bytes=32)
    app = create_app(settings, routes=[DomainRoute("/echo", echo)])

    def chunks():
        for _ in range(8):
            yield b'"padding", '

    with TestClient(app) as client:
        response = client.post(
            "/echo", content=chunks(), headers={"content-type": "application/json"}
        )

    assert response.status_code == 400
    assert response.json()["message"] == "Request entity too large"
    assert echo.calls == 0


def test_chunked_body_stops_reading_at_limit():
    received = 0

    async def receive():
        nonlocal received
        received += 1
        return {"type": "http.request", "body": b"x" * 10, "more_body": True}

    async def send(message):
        raise AssertionError(f"unexpected {message['type']}")

    async def downstream(scope, receive, send):
        raise AssertionError("body should not reach the router")

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/echo",
        "query_string": b"",
        "headers": [
            (b"content-type", b"application/json"),
            (b"transfer-encoding", b"chunked"),
        ],
    }
    middleware = BodyDecodeMiddleware(downstream, limit=25)

    with pytest.raises(ClientInputError) as excinfo:
        asyncio.run(middleware(scope, receive, send))

    assert excinfo.value.detail == {"limit": 25}
    assert received == 3
