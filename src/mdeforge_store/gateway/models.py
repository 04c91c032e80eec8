"""Wire models shared by the gateway stages."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorEnvelope(BaseModel):
    """Body returned for every REST-class failure."""

    model_config = ConfigDict(frozen=True)

    status: int
    message: str
    detail: Any | None = None

    def as_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


__all__ = ["ErrorEnvelope"]
