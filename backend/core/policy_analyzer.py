"""
Policy gap analyzer: RLS policies vs. the seeded role/permission catalog.

Reads (PostgreSQL only) RLS status per table, the seeded ``role_permissions``
rows and every policy of the schema, then diffs them. Read-only and advisory:
nothing here changes a policy or a permission.

Permission references are found by pattern-matching the policy predicate text
for the ``user_has_access(<workspace>, '<permission>')`` call shape. This is a
deliberate heuristic, not a SQL parser: references made any other way (another
function, a permission held in a variable, a subquery on role_permissions) are
not detected.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.db_connector import get_default_schema, qualify, scoped_connection
from core.errors import CatalogUnavailableError
from core.permissions import ROLE_CAPABILITIES, require_capability
from models.policy import (
    GapAnalysis,
    IncompleteCrud,
    MissingPermission,
    PolicyPermissionRef,
    PolicyRecord,
    RoleCatalog,
    SeededPermission,
    TableRlsStatus,
)
from models.tenant import TenantContext

logger = logging.getLogger(__name__)

ACCESS_CHECK_PATTERN = re.compile(r"user_has_access\([^,]+,\s*'([^']+)'")

CRUD_ACTIONS = ("view", "create", "edit", "delete")
ADMIN_ROLE = "admin"
WILDCARD = "*"

# Migration bookkeeping tables that never need RLS.
RLS_EXEMPT_TABLES = frozenset({
    "schema_migrations",
    "drizzle_migrations",
    "_prisma_migrations",
    "alembic_version",
})


# ── Catalog reads ─────────────────────────────────────────────────────────────

def _read(engine: Engine, sql: str, params: Optional[dict] = None) -> list[dict]:
    try:
        with scoped_connection(engine) as conn:
            return [dict(r) for r in conn.execute(text(sql), params or {}).mappings()]
    except SQLAlchemyError as e:
        logger.warning("Policy catalog read failed: %s", e)
        raise CatalogUnavailableError(None, str(e)) from e


def get_table_rls_status(engine: Engine) -> list[TableRlsStatus]:
    rows = _read(engine, """
        SELECT
            c.relname AS table_name,
            c.relrowsecurity AS rls_enabled,
            c.relforcerowsecurity AS rls_forced,
            COALESCE((
                SELECT COUNT(*) FROM pg_policies p
                WHERE p.tablename = c.relname AND p.schemaname = n.nspname
            ), 0)::int AS policy_count
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = :schema
          AND c.relkind = 'r'
        ORDER BY c.relname
    """, {"schema": get_default_schema(engine) or "public"})
    return [TableRlsStatus(has_policies=r["policy_count"] > 0, **r) for r in rows]


def get_seeded_permissions(engine: Engine) -> list[SeededPermission]:
    table = qualify("role_permissions", get_default_schema(engine))
    rows = _read(engine, f"SELECT role_id, permission, description FROM {table} ORDER BY role_id, permission")
    return [SeededPermission(**r) for r in rows]


def get_all_policies(engine: Engine) -> list[PolicyRecord]:
    rows = _read(engine, """
        SELECT schemaname, tablename, policyname, permissive, roles::text[] AS roles, cmd, qual, with_check
        FROM pg_policies
        WHERE schemaname = :schema
        ORDER BY tablename, policyname
    """, {"schema": get_default_schema(engine) or "public"})
    return [PolicyRecord(**r) for r in rows]


# ── Analysis ──────────────────────────────────────────────────────────────────

def extract_policy_permissions(policies: list[PolicyRecord]) -> list[PolicyPermissionRef]:
    """Every permission literal passed to user_has_access() in USING / WITH CHECK text."""
    refs: list[PolicyPermissionRef] = []
    seen: set[tuple[str, str, str, str]] = set()
    for policy in policies:
        for source, predicate in (("qual", policy.qual), ("with_check", policy.with_check)):
            for permission in ACCESS_CHECK_PATTERN.findall(predicate or ""):
                key = (policy.tablename, policy.policyname, permission, source)
                if key in seen:
                    continue
                seen.add(key)
                refs.append(PolicyPermissionRef(
                    tablename=policy.tablename,
                    policyname=policy.policyname,
                    permission=permission,
                    source=source,
                ))
    return refs


def _resource_and_action(permission: str) -> tuple[str, Optional[str]]:
    resource, _, action = permission.partition(".")
    return resource, action or None


def compute_gap_analysis(
    rls_status: list[TableRlsStatus],
    seeded: list[SeededPermission],
    refs: list[PolicyPermissionRef],
) -> GapAnalysis:
    seeded_set = {p.permission for p in seeded}

    missing: list[MissingPermission] = []
    reported: set[str] = set()
    for ref in refs:
        if ref.permission in seeded_set or ref.permission in reported:
            continue
        reported.add(ref.permission)
        missing.append(MissingPermission(
            permission=ref.permission, tablename=ref.tablename, policyname=ref.policyname
        ))

    without_policies = sorted(s.table_name for s in rls_status if s.rls_enabled and s.policy_count == 0)
    without_rls = sorted(
        s.table_name for s in rls_status
        if not s.rls_enabled
        and s.table_name not in RLS_EXEMPT_TABLES
        and not s.table_name.startswith(("pg_", "_pg_"))
    )

    admin_wildcard = any(p.permission == WILDCARD and p.role_id == ADMIN_ROLE for p in seeded)
    actions_by_resource: dict[str, set[str]] = {}
    for p in seeded:
        resource, action = _resource_and_action(p.permission)
        if not resource or resource == WILDCARD:
            continue
        actions_by_resource.setdefault(resource, set())
        if action:
            actions_by_resource[resource].add(action)

    incomplete: list[IncompleteCrud] = []
    if not admin_wildcard:
        for resource in sorted(actions_by_resource):
            actions = actions_by_resource[resource]
            if WILDCARD in actions:
                continue
            missing_actions = [a for a in CRUD_ACTIONS if a not in actions]
            if missing_actions:
                incomplete.append(IncompleteCrud(resource=resource, missing_actions=missing_actions))

    return GapAnalysis(
        missing_permissions=missing,
        tables_without_policies=without_policies,
        tables_without_rls=without_rls,
        incomplete_crud=incomplete,
    )


def analyze_gaps(tenant: TenantContext, engine: Engine) -> GapAnalysis:
    """Run the three catalog passes concurrently, then merge them."""
    require_capability(tenant, "roles.view")
    with ThreadPoolExecutor(max_workers=3) as pool:
        status_f = pool.submit(get_table_rls_status, engine)
        seeded_f = pool.submit(get_seeded_permissions, engine)
        policies_f = pool.submit(get_all_policies, engine)
        rls_status, seeded, policies = status_f.result(), seeded_f.result(), policies_f.result()

    refs = extract_policy_permissions(policies)
    analysis = compute_gap_analysis(rls_status, seeded, refs)
    logger.info(
        "Gap analysis: %d missing permissions, %d tables without policies, %d without RLS, %d incomplete resources",
        len(analysis.missing_permissions), len(analysis.tables_without_policies),
        len(analysis.tables_without_rls), len(analysis.incomplete_crud),
    )
    return analysis


def list_role_catalog(tenant: TenantContext, engine: Engine) -> RoleCatalog:
    require_capability(tenant, "roles.view")
    return RoleCatalog(roles=list(ROLE_CAPABILITIES), permissions=get_seeded_permissions(engine))
