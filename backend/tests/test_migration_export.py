import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from core.errors import ForbiddenError
from core.migration_export import SYNC_REMINDER, export_migration, generate_migration_filename, generate_migration_sql
from models.policy import PermissionChange

NOW = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)


def test_filename():
    assert generate_migration_filename(NOW) == "20240305140709_update_permissions.sql"


def test_additions_are_idempotent_inserts():
    sql = generate_migration_sql([
        PermissionChange(role_id="builder", permission="pages.edit", action="add", description="Edit pages"),
        PermissionChange(role_id="viewer", permission="pages.view", action="add"),
    ], NOW)
    assert "-- Generated: 2024-03-05T14:07:09.000+00:00" in sql
    assert "INSERT INTO public.role_permissions (role_id, permission, description) VALUES\n" in sql
    assert "  ('builder', 'pages.edit', 'Edit pages'),\n  ('viewer', 'pages.view', NULL)\n" in sql
    assert "ON CONFLICT (role_id, permission) DO NOTHING;" in sql
    assert "DELETE" not in sql
    assert sql.endswith(SYNC_REMINDER)


def test_removals_are_commented_out():
    sql = generate_migration_sql([PermissionChange(role_id="viewer", permission="data.view", action="remove")], NOW)
    delete_lines = [line for line in sql.splitlines() if "DELETE FROM" in line]
    assert delete_lines == [
        "-- DELETE FROM public.role_permissions WHERE role_id = 'viewer' AND permission = 'data.view';"
    ]
    assert "INSERT" not in sql


def test_no_changes_still_has_header_and_reminder():
    sql = generate_migration_sql([], NOW)
    assert sql.startswith("-- Migration: Update Role Permissions\n")
    assert "INSERT" not in sql and "DELETE" not in sql
    assert sql.endswith(SYNC_REMINDER)


def test_description_quotes_are_escaped():
    sql = generate_migration_sql([
        PermissionChange(role_id="user", permission="data.edit", action="add", description="Owner's rows"),
    ], NOW)
    assert "'Owner''s rows'" in sql


@pytest.mark.parametrize("role_id, permission", [
    ("viewer'; DROP TABLE x; --", "pages.view"),
    ("viewer", "pages.view'); DELETE FROM role_permissions; --"),
    ("viewer", "pages"),
])
def test_change_identifiers_are_validated(role_id, permission):
    with pytest.raises(ValidationError):
        PermissionChange(role_id=role_id, permission=permission, action="add")


def test_wildcards_accepted():
    PermissionChange(role_id="admin", permission="*", action="add")
    PermissionChange(role_id="builder", permission="pages.*", action="add")


def test_export_requires_roles_edit(admin, viewer):
    changes = [PermissionChange(role_id="viewer", permission="pages.view", action="add")]
    export = export_migration(admin, changes)
    assert export.filename.endswith("_update_permissions.sql")
    assert "'pages.view'" in export.content

    with pytest.raises(ForbiddenError):
        export_migration(viewer, changes)
