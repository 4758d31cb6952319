"""
Capability gate: role -> capability strings, checked before any catalog or data access.
Capabilities use ``resource.action`` notation; ``*`` grants everything.
"""
import logging

from core.errors import ForbiddenError
from models.tenant import TenantContext

logger = logging.getLogger(__name__)

ROLE_CAPABILITIES: dict[str, tuple[str, ...]] = {
    "admin": (
        "*",
        "pages.view",
        "pages.edit",
        "tables.view",
        "tables.edit",
        "data.view",
        "data.create",
        "data.edit",
        "data.delete",
    ),
    "builder": (
        "pages.view",
        "pages.edit",
        "tables.view",
        "tables.edit",
        "data.view",
        "data.create",
        "data.edit",
        "data.delete",
    ),
    "user": (
        "pages.view",
        "tables.view",
        "data.view",
        "data.create",
        "data.edit",
        "data.delete",
    ),
    "viewer": ("pages.view", "tables.view", "data.view"),
}


def has_capability(tenant: TenantContext, capability: str) -> bool:
    for role in tenant.roles:
        capabilities = ROLE_CAPABILITIES.get(role, ())
        if "*" in capabilities or capability in capabilities:
            return True
    return False


def require_capability(tenant: TenantContext, capability: str) -> None:
    if not has_capability(tenant, capability):
        logger.info("Denied %s for user %s in workspace %s", capability, tenant.user_id, tenant.workspace_id)
        raise ForbiddenError(capability)
