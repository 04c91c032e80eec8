"""GraphQL context helpers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Request
from strawberry.fastapi.context import BaseContext

from ...store.catalog import Catalog


@dataclass
class GraphQLContext(BaseContext):
    catalog: Catalog

    def __post_init__(self) -> None:
        super().__init__()


def build_context_getter(catalog: Catalog) -> Callable[[Request], Awaitable[GraphQLContext]]:
    """Return a FastAPI dependency producing a fresh context per operation."""

    async def get_context(request: Request) -> GraphQLContext:
        return GraphQLContext(catalog=catalog)

    return get_context
