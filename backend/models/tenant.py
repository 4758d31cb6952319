"""Pydantic schema for the caller's tenant context."""
from typing import Literal
from pydantic import BaseModel, Field


class TenantContext(BaseModel):
    workspace_id: str
    user_id: str
    roles: list[str] = Field(default_factory=list)
    mode: Literal["local", "hosted"] = "hosted"
