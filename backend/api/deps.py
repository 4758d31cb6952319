"""Request-scoped dependencies: tenant context and the shared engine services."""
from typing import Optional
from fastapi import Header, HTTPException, Request

from config import settings
from core.factory import Services
from models.tenant import TenantContext


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_tenant(
    x_workspace_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_roles: str = Header(""),
) -> TenantContext:
    """Tenant context as forwarded by the auth layer in front of this service."""
    if not x_workspace_id or not x_user_id:
        raise HTTPException(401, detail="Missing workspace or user context.")
    roles = [r.strip() for r in x_user_roles.split(",") if r.strip()]
    return TenantContext(workspace_id=x_workspace_id, user_id=x_user_id, roles=roles, mode=settings.APP_MODE)
