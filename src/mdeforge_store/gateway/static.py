"""Static artifact delivery from a fixed local directory."""

from __future__ import annotations

import os
from pathlib import Path

from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.types import Scope

from .errors import NotFoundError


class ArtifactFiles(StaticFiles):
    """Serve files under ``directory``; anything else is a :class:`NotFoundError`.

    Paths are resolved (symlinks included) and must stay inside the root.
    Missing files and escaping paths produce the same error so the layout
    outside the root is never revealed.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        root = Path(directory).resolve()
        root.mkdir(parents=True, exist_ok=True)
        self.root = root
        super().__init__(directory=root)

    def lookup_path(self, path: str) -> tuple[str, os.stat_result | None]:
        candidate = (self.root / path).resolve()
        if not candidate.is_relative_to(self.root):
            return "", None
        return super().lookup_path(path)

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code == 404:
                raise NotFoundError("File not found") from None
            raise


__all__ = ["ArtifactFiles"]
