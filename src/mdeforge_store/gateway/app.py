"""FastAPI application assembling the request pipeline.

This module wires the fixed, ordered set of gateway stages into one ASGI
application and routes the remaining requests by prefix to the domain
collaborators.

Key Responsibilities:
    - Stage ordering: security, CORS, body decoding, access logging, static
      assets, API documentation, GraphQL, domain routing, error handling
    - Funnelling every failure to the terminal error stage
    - Owning the lifecycle of the durable access log writer

Collaborators:
    - Upstream: ASGI server (Uvicorn)
    - Downstream: Injected GraphQL schema, domain route table, static root

Side Effects:
    - Configures logging and metrics
    - Creates the static root and log directory when missing

Thread Safety:
    - Settings, schema and route table are built once and only read afterwards

Example:
    >>> from mdeforge_store.gateway.app import create_app
    >>> app = create_app()
    >>> # Run with: uvicorn --factory mdeforge_store.gateway.app:create_app

"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from typing import Any

import strawberry
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware import Middleware

from .. import __version__
from ..config.settings import GatewaySettings, get_settings
from ..observability import setup_observability
from ..store.catalog import Catalog
from ..store.rest import default_routes
from ..store.schema import schema as default_schema
from ..utils.logging import get_logger
from .access_log import (
    AccessLogMiddleware,
    AccessLogSink,
    ConsoleAccessLogSink,
    FileAccessLogSink,
    MetricsAccessLogSink,
)
from .docs import documentation_router, generate_api_document
from .error_stage import ErrorStage, install_error_handlers
from .graphql import GatewayGraphQLRouter, build_context_getter
from .middleware import BodyDecodeMiddleware, SecurityHeadersMiddleware
from .routing import DomainRoute, DomainRouter
from .static import ArtifactFiles

logger = get_logger(__name__)

# Request-phase order of the stages. The access log wraps the whole pipeline
# so it observes the finalized response; security and CORS headers wrap the
# error stage so error responses carry them too.
PIPELINE_STAGES: tuple[str, ...] = (
    "security",
    "cors",
    "body_decode",
    "access_log",
    "static",
    "docs",
    "graphql",
    "domain",
    "error",
)

# ==============================================================================
# PIPELINE ASSEMBLY
# ==============================================================================


def build_middleware(
    settings: GatewaySettings,
    *,
    sinks: Iterable[AccessLogSink],
    diagnostic_sinks: Iterable[AccessLogSink],
) -> list[Middleware]:
    """Return the middleware stack, outermost first."""
    cors = settings.cors
    return [
        Middleware(
            AccessLogMiddleware,
            sinks=tuple(sinks),
            diagnostic_sinks=tuple(diagnostic_sinks),
            diagnostic_threshold=settings.access_log.diagnostic_threshold,
            correlation_header=settings.access_log.correlation_header,
        ),
        Middleware(SecurityHeadersMiddleware, headers_config=settings.security.headers),
        Middleware(
            CORSMiddleware,
            allow_origins=list(cors.allow_origins),
            allow_methods=list(cors.allow_methods),
            allow_headers=list(cors.allow_headers),
            allow_credentials=cors.allow_credentials,
            max_age=cors.max_age,
        ),
        Middleware(ErrorStage),
        Middleware(BodyDecodeMiddleware, limit=settings.body_limit_bytes),
    ]


# ==============================================================================
# APPLICATION FACTORY
# ==============================================================================


def create_app(
    settings: GatewaySettings | None = None,
    *,
    schema: strawberry.Schema | None = None,
    routes: Iterable[DomainRoute] | None = None,
    catalog: Catalog | None = None,
    context_getter: Callable[..., Any] | None = None,
) -> FastAPI:
    """Assemble the gateway.

    Args:
        settings: Loaded settings; defaults to :func:`get_settings`.
        schema: GraphQL schema collaborator; defaults to the catalog schema.
        routes: Domain route table; defaults to the four store domains.
        catalog: Backing catalog for the default collaborators.
        context_getter: GraphQL context dependency; defaults to one exposing
            ``catalog``.
    """
    settings = settings or get_settings()
    catalog = catalog if catalog is not None else Catalog()
    route_table = tuple(routes) if routes is not None else default_routes(catalog)
    domain_router = DomainRouter(route_table)
    api_document = generate_api_document(route_table, settings.docs)

    access_log = FileAccessLogSink(
        settings.access_log.log_file,
        max_bytes=settings.access_log.max_bytes,
        backup_count=settings.access_log.backup_count,
    )
    sinks: list[AccessLogSink] = [access_log]
    if settings.metrics.enabled:
        sinks.append(MetricsAccessLogSink())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        access_log.start()
        logger.info(
            "gateway.started",
            extra={"routes": [route.prefix for route in domain_router.routes]},
        )
        try:
            yield
        finally:
            access_log.stop()

    app = FastAPI(
        title=settings.docs.title,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
        middleware=build_middleware(
            settings, sinks=sinks, diagnostic_sinks=[ConsoleAccessLogSink()]
        ),
    )
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.access_log = access_log
    app.state.api_document = api_document
    app.state.domain_router = domain_router

    setup_observability(app, settings)
    install_error_handlers(app)

    app.mount(settings.static_prefix, ArtifactFiles(settings.static_root), name="files")
    app.include_router(documentation_router(api_document, settings.docs))
    graphql_router = GatewayGraphQLRouter(
        schema or default_schema,
        context_getter=context_getter or build_context_getter(catalog),
        graphql_ide="graphiql" if settings.graphql.explorer else None,
    )
    app.include_router(graphql_router, prefix=settings.graphql.path)

    # Anything the stages above do not claim falls through to prefix dispatch.
    app.router.default = domain_router
    return app


# ==============================================================================
# EXPORTS
# ==============================================================================

__all__ = ["PIPELINE_STAGES", "build_middleware", "create_app"]
