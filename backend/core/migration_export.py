"""
Role-permission migration export.

Turns a list of permission changes into a SQL script for a person to review and
apply. Additions are idempotent INSERTs; removals are emitted commented out so
nothing destructive runs by accident. Nothing here touches the database.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from core.permissions import require_capability
from models.policy import MigrationExport, PermissionChange
from models.tenant import TenantContext

logger = logging.getLogger(__name__)

SYNC_REMINDER = (
    "-- SYNC REMINDER: Update ROLE_CAPABILITIES in core/permissions.py to match these changes.\n"
)


def _literal(value: Optional[str]) -> str:
    if value is None:
        return "NULL"
    return "'" + value.replace("'", "''") + "'"


def generate_migration_sql(changes: list[PermissionChange], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    additions = [c for c in changes if c.action == "add"]
    removals = [c for c in changes if c.action == "remove"]

    parts = [
        "-- Migration: Update Role Permissions\n",
        f"-- Generated: {now.isoformat(timespec='milliseconds')}\n",
        "-- Note: Review carefully before applying.\n\n",
    ]

    if additions:
        values = ",\n".join(
            f"  ({_literal(c.role_id)}, {_literal(c.permission)}, {_literal(c.description)})"
            for c in additions
        )
        parts.append(
            "-- ADD PERMISSIONS\n"
            "INSERT INTO public.role_permissions (role_id, permission, description) VALUES\n"
            f"{values}\n"
            "ON CONFLICT (role_id, permission) DO NOTHING;\n\n"
        )

    if removals:
        parts.append("-- REMOVE PERMISSIONS\n-- Commented out for safety. Uncomment to apply.\n")
        for c in removals:
            parts.append(
                f"-- DELETE FROM public.role_permissions WHERE role_id = {_literal(c.role_id)} "
                f"AND permission = {_literal(c.permission)};\n"
            )
        parts.append("\n")

    parts.append(SYNC_REMINDER)
    return "".join(parts)


def generate_migration_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{now.strftime('%Y%m%d%H%M%S')}_update_permissions.sql"


def export_migration(tenant: TenantContext, changes: list[PermissionChange]) -> MigrationExport:
    require_capability(tenant, "roles.edit")
    now = datetime.now(timezone.utc)
    logger.info("Exporting permission migration with %d change(s)", len(changes))
    return MigrationExport(
        filename=generate_migration_filename(now),
        content=generate_migration_sql(changes, now),
    )
