import asyncio

import strawberry
from fastapi.testclient import TestClient

from mdeforge_store.config.settings import GatewaySettings
from mdeforge_store.gateway.app import create_app
from mdeforge_store.gateway.graphql.context import GraphQLContext, build_context_getter
from mdeforge_store.store.catalog import Catalog


@strawberry.type
class PartialQuery:
    @strawberry.field
    def ok(self) -> str:
        return "fine"

    @strawberry.field
    def broken(self) -> str | None:
        raise RuntimeError("resolver exploded")


def test_mutation_then_query(client: TestClient):
    created = client.post(
        "/graphql",
        json={
            "query": "mutation($name: String!) { createWorkspace(name: $name) { id name } }",
            "variables": {"name": "Metamodels"},
        },
    )
    assert created.status_code == 200
    workspace = created.json()["data"]["createWorkspace"]
    assert workspace["name"] == "Metamodels"

    listed = client.post("/graphql", json={"query": "{ workspaces { id name } }"})
    assert listed.json() == {"data": {"workspaces": [workspace]}}


def test_invalid_query_returns_errors_without_data(client: TestClient):
    response = client.post("/graphql", json={"query": "{ users { id "})

    assert response.status_code == 200
    body = response.json()
    assert body["errors"]
    assert "data" not in body


def test_unknown_field_returns_errors_without_data(client: TestClient):
    response = client.post("/graphql", json={"query": "{ nothingHere }"})

    assert response.status_code == 200
    assert "data" not in response.json()


def test_missing_record_is_reported_in_band(client: TestClient):
    response = client.post("/graphql", json={"query": '{ user(id: "nope") { id } }'})

    assert response.status_code == 200
    body = response.json()
    assert "data" not in body
    assert body["errors"][0]["message"] == "User nope not found"


def test_partial_failure_keeps_data(settings: GatewaySettings):
    schema = strawberry.Schema(query=PartialQuery)
    with TestClient(create_app(settings, schema=schema)) as client:
        response = client.post("/graphql", json={"query": "{ ok broken }"})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"ok": "fine", "broken": None}
    assert body["errors"][0]["path"] == ["broken"]


def test_explorer_served_on_browser_get(client: TestClient):
    response = client.get("/graphql", headers={"accept": "text/html"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "unsafe-inline" in response.headers["content-security-policy"]


def test_queries_are_accepted_via_get(client: TestClient):
    response = client.get("/graphql", params={"query": "{ users { id } }"})
    assert response.json() == {"data": {"users": []}}


def test_context_getter_builds_fresh_context_per_operation():
    catalog = Catalog()
    get_context = build_context_getter(catalog)

    first = asyncio.run(get_context(None))
    second = asyncio.run(get_context(None))

    assert isinstance(first, GraphQLContext)
    assert first.catalog is catalog
    assert first is not second
