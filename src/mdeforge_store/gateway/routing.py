"""Prefix dispatch to the domain sub-systems.

The route table is declared once at startup as a tuple of
:class:`DomainRoute` values and is never mutated afterwards, so concurrent
requests read it without locking.
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from starlette.types import ASGIApp, Receive, Scope, Send

from ..utils.logging import get_logger
from .errors import NotFoundError

logger = get_logger(__name__)

# ==============================================================================
# ROUTE TABLE
# ==============================================================================


@dataclass(frozen=True, slots=True)
class DomainRoute:
    """A ``(prefix, handler)`` entry of the dispatch table."""

    prefix: str
    handler: ASGIApp
    name: str = ""

    def __post_init__(self) -> None:
        if not self.prefix.startswith("/") or self.prefix.endswith("/"):
            raise ValueError(f"Route prefix must start and not end with '/': {self.prefix!r}")

    def matches(self, path: str) -> bool:
        """Return whether ``path`` falls under this prefix on a segment boundary."""
        return path == self.prefix or path.startswith(self.prefix + "/")


# ==============================================================================
# DISPATCHER
# ==============================================================================


class DomainRouter:
    """ASGI application dispatching by longest matching route prefix."""

    def __init__(self, routes: Iterable[DomainRoute]) -> None:
        table = tuple(routes)
        prefixes = [route.prefix for route in table]
        duplicates = {prefix for prefix in prefixes if prefixes.count(prefix) > 1}
        if duplicates:
            raise ValueError(f"Duplicate route prefixes: {sorted(duplicates)}")
        self.routes: tuple[DomainRoute, ...] = tuple(
            sorted(table, key=lambda route: len(route.prefix), reverse=True)
        )

    def resolve(self, path: str) -> DomainRoute | None:
        for route in self.routes:
            if route.matches(path):
                return route
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": 1000})
            return

        root_path = scope.get("root_path", "")
        path = scope["path"]
        if root_path and path.startswith(root_path):
            path = path[len(root_path) :] or "/"
        route = self.resolve(path)
        if route is None:
            raise NotFoundError(f"Cannot {scope['method']} {path}")

        # Sub-applications see the remainder of the path below the prefix.
        child_scope = dict(scope)
        child_scope["root_path"] = root_path + route.prefix
        if path == route.prefix:
            child_scope["path"] = scope["path"] + "/"
        logger.debug("gateway.dispatch", extra={"route": route.name or route.prefix, "path": path})
        await route.handler(child_scope, receive, send)


__all__ = ["DomainRoute", "DomainRouter"]
