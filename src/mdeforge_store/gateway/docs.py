"""API documentation built once at startup from domain route annotations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from fastapi import APIRouter
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse

from ..config.settings import DocumentationSettings
from ..utils.logging import get_logger
from .routing import DomainRoute

logger = get_logger(__name__)


def generate_api_document(
    routes: Sequence[DomainRoute], info: DocumentationSettings
) -> dict[str, Any]:
    """Merge the OpenAPI description of every domain handler under its prefix.

    Handlers without FastAPI route annotations contribute nothing.
    """
    document = get_openapi(
        title=info.title,
        version=info.version,
        description=info.description,
        routes=[],
        servers=[{"url": url} for url in info.servers],
    )
    paths: dict[str, Any] = dict(document.get("paths") or {})
    schemas: dict[str, Any] = dict(document.get("components", {}).get("schemas", {}))

    for route in routes:
        annotated = getattr(route.handler, "routes", None)
        if annotated is None:
            logger.debug("docs.route.unannotated", extra={"prefix": route.prefix})
            continue
        partial = get_openapi(title=info.title, version=info.version, routes=annotated)
        for path, item in partial.get("paths", {}).items():
            paths[route.prefix if path == "/" else route.prefix + path] = item
        schemas.update(partial.get("components", {}).get("schemas", {}))

    document["paths"] = paths
    if schemas:
        document.setdefault("components", {})["schemas"] = schemas
    return document


def documentation_router(document: Mapping[str, Any], settings: DocumentationSettings) -> APIRouter:
    """Serve ``document`` and a Swagger UI viewer bound to it."""
    router = APIRouter(include_in_schema=False)
    base = settings.path.rstrip("/")
    document_url = f"{base}/openapi.json"
    payload = dict(document)

    @router.get(base)
    async def api_docs() -> HTMLResponse:
        return get_swagger_ui_html(openapi_url=document_url, title=settings.title)

    @router.get(document_url)
    async def api_document() -> JSONResponse:
        return JSONResponse(payload)

    return router


__all__ = ["documentation_router", "generate_api_document"]
