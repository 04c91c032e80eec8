"""Default GraphQL schema over the in-memory catalog."""

from __future__ import annotations

from datetime import datetime

import strawberry
from strawberry import ID
from strawberry.types import Info

from ..gateway.graphql.context import GraphQLContext
from .catalog import (
    Artifact,
    ArtifactInput,
    Project,
    ProjectInput,
    User,
    UserInput,
    Workspace,
    WorkspaceInput,
)

# ==============================================================================
# TYPES
# ==============================================================================


@strawberry.type(name="User")
class UserType:
    id: ID
    username: str
    email: str
    created_at: datetime


@strawberry.type(name="Workspace")
class WorkspaceType:
    id: ID
    name: str
    description: str | None
    owner_id: ID | None
    created_at: datetime


@strawberry.type(name="Project")
class ProjectType:
    id: ID
    name: str
    description: str | None
    workspace_id: ID | None
    created_at: datetime


@strawberry.type(name="Artifact")
class ArtifactType:
    id: ID
    name: str
    type: str
    project_id: ID | None
    file_path: str | None
    created_at: datetime


def _user_to_type(record: User) -> UserType:
    return UserType(
        id=ID(record.id),
        username=record.username,
        email=record.email,
        created_at=record.created_at,
    )


def _workspace_to_type(record: Workspace) -> WorkspaceType:
    return WorkspaceType(
        id=ID(record.id),
        name=record.name,
        description=record.description,
        owner_id=record.owner_id,
        created_at=record.created_at,
    )


def _project_to_type(record: Project) -> ProjectType:
    return ProjectType(
        id=ID(record.id),
        name=record.name,
        description=record.description,
        workspace_id=record.workspace_id,
        created_at=record.created_at,
    )


def _artifact_to_type(record: Artifact) -> ArtifactType:
    return ArtifactType(
        id=ID(record.id),
        name=record.name,
        type=record.type,
        project_id=record.project_id,
        file_path=record.file_path,
        created_at=record.created_at,
    )


# ==============================================================================
# OPERATIONS
# ==============================================================================


@strawberry.type
class Query:
    @strawberry.field
    def users(self, info: Info[GraphQLContext, None]) -> list[UserType]:
        return [_user_to_type(record) for record in info.context.catalog.users.list()]

    @strawberry.field
    def user(self, info: Info[GraphQLContext, None], id: ID) -> UserType:
        return _user_to_type(info.context.catalog.users.get(str(id)))

    @strawberry.field
    def workspaces(
        self, info: Info[GraphQLContext, None], owner_id: ID | None = None
    ) -> list[WorkspaceType]:
        records = info.context.catalog.workspaces.list(owner_id=owner_id)
        return [_workspace_to_type(record) for record in records]

    @strawberry.field
    def workspace(self, info: Info[GraphQLContext, None], id: ID) -> WorkspaceType:
        return _workspace_to_type(info.context.catalog.workspaces.get(str(id)))

    @strawberry.field
    def projects(
        self, info: Info[GraphQLContext, None], workspace_id: ID | None = None
    ) -> list[ProjectType]:
        records = info.context.catalog.projects.list(workspace_id=workspace_id)
        return [_project_to_type(record) for record in records]

    @strawberry.field
    def project(self, info: Info[GraphQLContext, None], id: ID) -> ProjectType:
        return _project_to_type(info.context.catalog.projects.get(str(id)))

    @strawberry.field
    def artifacts(
        self, info: Info[GraphQLContext, None], project_id: ID | None = None
    ) -> list[ArtifactType]:
        records = info.context.catalog.artifacts.list(project_id=project_id)
        return [_artifact_to_type(record) for record in records]

    @strawberry.field
    def artifact(self, info: Info[GraphQLContext, None], id: ID) -> ArtifactType:
        return _artifact_to_type(info.context.catalog.artifacts.get(str(id)))


@strawberry.type
class Mutation:
    @strawberry.mutation
    def create_user(self, info: Info[GraphQLContext, None], username: str, email: str) -> UserType:
        record = info.context.catalog.users.create(UserInput(username=username, email=email))
        return _user_to_type(record)

    @strawberry.mutation
    def create_workspace(
        self,
        info: Info[GraphQLContext, None],
        name: str,
        description: str | None = None,
        owner_id: ID | None = None,
    ) -> WorkspaceType:
        data = WorkspaceInput(name=name, description=description, owner_id=owner_id)
        return _workspace_to_type(info.context.catalog.workspaces.create(data))

    @strawberry.mutation
    def create_project(
        self,
        info: Info[GraphQLContext, None],
        name: str,
        description: str | None = None,
        workspace_id: ID | None = None,
    ) -> ProjectType:
        data = ProjectInput(name=name, description=description, workspace_id=workspace_id)
        return _project_to_type(info.context.catalog.projects.create(data))

    @strawberry.mutation
    def create_artifact(
        self,
        info: Info[GraphQLContext, None],
        name: str,
        type: str = "model",
        project_id: ID | None = None,
        file_path: str | None = None,
    ) -> ArtifactType:
        data = ArtifactInput(name=name, type=type, project_id=project_id, file_path=file_path)
        return _artifact_to_type(info.context.catalog.artifacts.create(data))


schema = strawberry.Schema(query=Query, mutation=Mutation)


__all__ = ["Mutation", "Query", "schema"]
