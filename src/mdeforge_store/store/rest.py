"""Default REST collaborators for the user, workspace, project and artifact domains.

Each domain is an independent FastAPI sub-application mounted by prefix.
Route summaries and models are the annotations the API document is built
from.
"""

# No postponed annotations: body models are bound per domain at definition time.

from dataclasses import dataclass

from fastapi import FastAPI, Response
from pydantic import BaseModel

from ..gateway.error_stage import install_error_handlers
from ..gateway.routing import DomainRoute
from .catalog import (
    Artifact,
    ArtifactInput,
    Catalog,
    InMemoryRepository,
    Project,
    ProjectInput,
    User,
    UserInput,
    Workspace,
    WorkspaceInput,
)


@dataclass(frozen=True, slots=True)
class Resource:
    name: str
    plural: str
    input_model: type[BaseModel]
    record_model: type[BaseModel]


USER = Resource("user", "users", UserInput, User)
WORKSPACE = Resource("workspace", "workspaces", WorkspaceInput, Workspace)
PROJECT = Resource("project", "projects", ProjectInput, Project)
ARTIFACT = Resource("artifact", "artifacts", ArtifactInput, Artifact)


def build_resource_app(resource: Resource, repository: InMemoryRepository) -> FastAPI:
    """Build the CRUD sub-application for one domain."""
    app = FastAPI(
        title=f"{resource.name} store",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    install_error_handlers(app)
    input_model = resource.input_model
    record_model = resource.record_model
    tags = [resource.plural]

    @app.get(
        "/",
        response_model=list[record_model],
        summary=f"List {resource.plural}",
        operation_id=f"list_{resource.plural}",
        tags=tags,
    )
    async def list_items() -> list:
        return repository.list()

    @app.post(
        "/",
        response_model=record_model,
        status_code=201,
        summary=f"Create a {resource.name}",
        operation_id=f"create_{resource.name}",
        tags=tags,
    )
    async def create_item(payload: input_model):  # type: ignore[valid-type]
        return repository.create(payload)

    @app.get(
        "/{item_id}",
        response_model=record_model,
        summary=f"Get a {resource.name}",
        operation_id=f"get_{resource.name}",
        tags=tags,
    )
    async def get_item(item_id: str):
        return repository.get(item_id)

    @app.put(
        "/{item_id}",
        response_model=record_model,
        summary=f"Replace a {resource.name}",
        operation_id=f"replace_{resource.name}",
        tags=tags,
    )
    async def replace_item(item_id: str, payload: input_model):  # type: ignore[valid-type]
        return repository.replace(item_id, payload)

    @app.delete(
        "/{item_id}",
        status_code=204,
        summary=f"Delete a {resource.name}",
        operation_id=f"delete_{resource.name}",
        tags=tags,
    )
    async def delete_item(item_id: str) -> Response:
        repository.delete(item_id)
        return Response(status_code=204)

    return app


def default_routes(catalog: Catalog) -> tuple[DomainRoute, ...]:
    """Statically declared dispatch table for the four store domains."""
    return (
        DomainRoute("/store/user", build_resource_app(USER, catalog.users), USER.name),
        DomainRoute(
            "/store/workspace",
            build_resource_app(WORKSPACE, catalog.workspaces),
            WORKSPACE.name,
        ),
        DomainRoute("/store/project", build_resource_app(PROJECT, catalog.projects), PROJECT.name),
        DomainRoute(
            "/store/artifact",
            build_resource_app(ARTIFACT, catalog.artifacts),
            ARTIFACT.name,
        ),
    )


__all__ = [
    "ARTIFACT",
    "PROJECT",
    "USER",
    "WORKSPACE",
    "Resource",
    "build_resource_app",
    "default_routes",
]
