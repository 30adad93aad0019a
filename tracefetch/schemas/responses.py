from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "tracefetch"


class User(BaseModel):
    """User record served by the upstream ``/users/{id}`` endpoint."""

    model_config = ConfigDict(strict=True, frozen=True)

    id: int = Field(..., description="User id")
    name: str = Field(..., description="Display name")
