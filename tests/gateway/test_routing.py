import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import JSONResponse

from mdeforge_store.config.settings import GatewaySettings
from mdeforge_store.gateway.app import create_app
from mdeforge_store.gateway.routing import DomainRoute, DomainRouter


def _named(name: str):
    async def handler(scope, receive, send):
        request = Request(scope, receive)
        payload = {"handler": name, "root_path": scope["root_path"], "path": request.url.path}
        await JSONResponse(payload)(scope, receive, send)

    return handler


@pytest.fixture
def routed_client(settings: GatewaySettings):
    routes = [
        DomainRoute("/store", _named("store")),
        DomainRoute("/store/user", _named("user")),
        DomainRoute("/store/workspace", _named("workspace")),
    ]
    with TestClient(create_app(settings, routes=routes)) as client:
        yield client


def test_router_orders_routes_by_prefix_length():
    router = DomainRouter(
        [DomainRoute("/a", _named("a")), DomainRoute("/a/b/c", _named("c")), DomainRoute("/a/b", _named("b"))]
    )
    assert [route.prefix for route in router.routes] == ["/a/b/c", "/a/b", "/a"]


def test_resolve_matches_on_segment_boundaries():
    router = DomainRouter([DomainRoute("/store/user", _named("user"))])
    assert router.resolve("/store/user") is not None
    assert router.resolve("/store/user/42") is not None
    assert router.resolve("/store/users") is None
    assert router.resolve("/Store/user") is None


def test_duplicate_prefixes_are_rejected():
    with pytest.raises(ValueError, match="Duplicate"):
        DomainRouter([DomainRoute("/x", _named("a")), DomainRoute("/x", _named("b"))])


@pytest.mark.parametrize("prefix", ["store", "/store/", ""])
def test_prefix_must_be_rooted_without_trailing_slash(prefix):
    with pytest.raises(ValueError):
        DomainRoute(prefix, _named("bad"))


def test_longest_prefix_wins(routed_client: TestClient):
    response = routed_client.get("/store/user/42")
    assert response.status_code == 200
    assert response.json()["handler"] == "user"
    assert response.json()["root_path"] == "/store/user"


def test_shorter_prefix_handles_other_paths(routed_client: TestClient):
    response = routed_client.get("/store/project/1")
    assert response.json()["handler"] == "store"


def test_exact_prefix_is_delegated_as_root(routed_client: TestClient):
    response = routed_client.get("/store/workspace")
    body = response.json()
    assert body["handler"] == "workspace"
    assert body["path"] == "/store/workspace/"


def test_unmatched_path_returns_not_found_envelope(client: TestClient):
    response = client.get("/store/unknown")
    assert response.status_code == 404
    assert response.json() == {"status": 404, "message": "Cannot GET /store/unknown"}


def test_prefix_match_is_case_sensitive(client: TestClient):
    assert client.get("/STORE/user").status_code == 404
