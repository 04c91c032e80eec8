"""In-memory catalog backing the default domain collaborators.

Records are pydantic models keyed by generated identifiers. The catalog is
created once at startup and shared by the REST sub-applications and the
GraphQL schema context.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..gateway.errors import NotFoundError

# ==============================================================================
# RECORD MODELS
# ==============================================================================


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime


class UserInput(BaseModel):
    username: str = Field(min_length=1)
    email: str = Field(min_length=3)


class User(Record, UserInput):
    pass


class WorkspaceInput(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    owner_id: str | None = None


class Workspace(Record, WorkspaceInput):
    pass


class ProjectInput(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    workspace_id: str | None = None


class Project(Record, ProjectInput):
    pass


class ArtifactInput(BaseModel):
    name: str = Field(min_length=1)
    type: str = Field(default="model", description="Artifact kind, e.g. model or metamodel")
    project_id: str | None = None
    file_path: str | None = Field(
        default=None, description="Path relative to the static artifact root"
    )


class Artifact(Record, ArtifactInput):
    pass


RecordT = TypeVar("RecordT", bound=Record)

# ==============================================================================
# REPOSITORY
# ==============================================================================


class InMemoryRepository(Generic[RecordT]):
    """Dictionary-backed repository for one record type."""

    def __init__(self, kind: str, model: type[RecordT]) -> None:
        self.kind = kind
        self.model = model
        self._items: dict[str, RecordT] = {}

    def __iter__(self) -> Iterator[RecordT]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def list(self, **filters: Any) -> list[RecordT]:
        active = {key: value for key, value in filters.items() if value is not None}
        return [
            item
            for item in self
            if all(getattr(item, key) == value for key, value in active.items())
        ]

    def get(self, item_id: str) -> RecordT:
        try:
            return self._items[item_id]
        except KeyError:
            raise NotFoundError(f"{self.kind} {item_id} not found") from None

    def create(self, data: BaseModel) -> RecordT:
        record = self.model(id=uuid4().hex, created_at=datetime.now(UTC), **data.model_dump())
        self._items[record.id] = record
        return record

    def replace(self, item_id: str, data: BaseModel) -> RecordT:
        current = self.get(item_id)
        record = self.model(id=current.id, created_at=current.created_at, **data.model_dump())
        self._items[item_id] = record
        return record

    def delete(self, item_id: str) -> RecordT:
        record = self.get(item_id)
        del self._items[item_id]
        return record


@dataclass
class Catalog:
    users: InMemoryRepository[User] = field(
        default_factory=lambda: InMemoryRepository("User", User)
    )
    workspaces: InMemoryRepository[Workspace] = field(
        default_factory=lambda: InMemoryRepository("Workspace", Workspace)
    )
    projects: InMemoryRepository[Project] = field(
        default_factory=lambda: InMemoryRepository("Project", Project)
    )
    artifacts: InMemoryRepository[Artifact] = field(
        default_factory=lambda: InMemoryRepository("Artifact", Artifact)
    )


__all__ = [
    "Artifact",
    "ArtifactInput",
    "Catalog",
    "InMemoryRepository",
    "Project",
    "ProjectInput",
    "Record",
    "User",
    "UserInput",
    "Workspace",
    "WorkspaceInput",
]
