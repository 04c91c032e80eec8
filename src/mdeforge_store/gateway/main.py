"""Command line helpers for the store gateway.

Example:
-------
    >>> python -m mdeforge_store.gateway.main --serve
    >>> python -m mdeforge_store.gateway.main --export-openapi --output api.yaml
    >>> python -m mdeforge_store.gateway.main --export-graphql

"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================

import argparse
from pathlib import Path

from yaml import safe_dump

from ..config.settings import get_settings
from ..store.catalog import Catalog
from ..store.rest import default_routes
from ..store.schema import schema
from .docs import generate_api_document

# ==============================================================================
# EXPORT FUNCTIONS
# ==============================================================================


def export_openapi() -> str:
    """Return the generated API document as YAML."""
    document = generate_api_document(default_routes(Catalog()), get_settings().docs)
    return safe_dump(document, sort_keys=False)


def export_graphql() -> str:
    """Return the GraphQL schema definition language (SDL) string."""
    return schema.as_str()


def serve() -> None:  # pragma: no cover - manual invocation helper
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mdeforge_store.gateway.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        access_log=False,
    )


# ==============================================================================
# CLI INTERFACE
# ==============================================================================


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Store gateway utilities")
    parser.add_argument("--serve", action="store_true", help="Run the gateway with uvicorn")
    parser.add_argument("--export-openapi", action="store_true", help="Print the API document")
    parser.add_argument("--export-graphql", action="store_true", help="Print GraphQL SDL")
    parser.add_argument("--output", type=Path, default=None, help="Optional file path to write")
    args = parser.parse_args(argv)

    if not any([args.serve, args.export_openapi, args.export_graphql]):
        parser.error("Choose at least one option")

    if args.serve:
        serve()
        return

    content = export_openapi() if args.export_openapi else export_graphql()
    if args.output:
        args.output.write_text(content, encoding="utf-8")
    else:
        print(content)


__all__ = ["export_graphql", "export_openapi", "main"]


if __name__ == "__main__":  # pragma: no cover
    main()
