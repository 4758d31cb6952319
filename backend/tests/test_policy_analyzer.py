import pytest
from unittest.mock import patch

from core.errors import CatalogUnavailableError, ForbiddenError
from core.policy_analyzer import analyze_gaps, compute_gap_analysis, extract_policy_permissions, get_seeded_permissions
from models.policy import PolicyRecord, SeededPermission, TableRlsStatus


def _policy(table, name, qual=None, with_check=None):
    return PolicyRecord(schemaname="public", tablename=table, policyname=name, qual=qual, with_check=with_check)


def _seed(*pairs):
    return [SeededPermission(role_id=role, permission=perm) for role, perm in pairs]


PAGE_POLICIES = [
    _policy("pages", "pages_select", qual="user_has_access(workspace_id, 'pages.view'::text)"),
    _policy(
        "pages", "pages_update",
        qual="user_has_access(workspace_id, 'pages.edit')",
        with_check="user_has_access(workspace_id,   'pages.edit')",
    ),
]


def test_extract_policy_permissions():
    refs = extract_policy_permissions(PAGE_POLICIES)
    assert [(r.policyname, r.permission, r.source) for r in refs] == [
        ("pages_select", "pages.view", "qual"),
        ("pages_update", "pages.edit", "qual"),
        ("pages_update", "pages.edit", "with_check"),
    ]


def test_extract_ignores_other_predicates():
    policies = [
        _policy("notes", "own_rows", qual="(owner_id = auth.uid())"),
        _policy("notes", "via_subquery", qual="EXISTS (SELECT 1 FROM role_permissions WHERE permission = 'notes.view')"),
        _policy("notes", "empty"),
    ]
    assert extract_policy_permissions(policies) == []


def test_missing_permission_reported_once():
    refs = extract_policy_permissions(PAGE_POLICIES)
    analysis = compute_gap_analysis([], _seed(("viewer", "pages.view")), refs)
    assert [(m.permission, m.tablename, m.policyname) for m in analysis.missing_permissions] == [
        ("pages.edit", "pages", "pages_update"),
    ]


def test_nothing_missing_when_all_seeded():
    refs = extract_policy_permissions(PAGE_POLICIES)
    analysis = compute_gap_analysis([], _seed(("viewer", "pages.view"), ("builder", "pages.edit")), refs)
    assert analysis.missing_permissions == []


def test_rls_status_buckets():
    status = [
        TableRlsStatus(table_name="orders", rls_enabled=True, policy_count=0),
        TableRlsStatus(table_name="pages", rls_enabled=True, policy_count=2, has_policies=True),
        TableRlsStatus(table_name="customers", rls_enabled=False),
        TableRlsStatus(table_name="alembic_version", rls_enabled=False),
        TableRlsStatus(table_name="pg_stat_statements", rls_enabled=False),
    ]
    analysis = compute_gap_analysis(status, [], [])
    assert analysis.tables_without_policies == ["orders"]
    assert analysis.tables_without_rls == ["customers"]


def test_incomplete_crud():
    seeded = _seed(
        ("viewer", "pages.view"),
        ("builder", "pages.edit"),
        ("builder", "data.view"),
        ("builder", "data.create"),
        ("builder", "data.edit"),
        ("builder", "data.delete"),
        ("builder", "tables.*"),
    )
    analysis = compute_gap_analysis([], seeded, [])
    assert [(i.resource, i.missing_actions) for i in analysis.incomplete_crud] == [
        ("pages", ["create", "delete"]),
    ]


def test_admin_wildcard_suppresses_crud_findings():
    seeded = _seed(("admin", "*"), ("viewer", "pages.view"))
    assert compute_gap_analysis([], seeded, []).incomplete_crud == []


def test_wildcard_for_other_role_does_not_suppress():
    seeded = _seed(("builder", "*"), ("viewer", "pages.view"))
    analysis = compute_gap_analysis([], seeded, [])
    assert [i.resource for i in analysis.incomplete_crud] == ["pages"]


def test_gap_analysis_serializes_camel_case():
    body = compute_gap_analysis([], _seed(("viewer", "pages.view")), []).model_dump(by_alias=True)
    assert set(body) == {"missingPermissions", "tablesWithoutPolicies", "tablesWithoutRls", "incompleteCrud"}
    assert body["incompleteCrud"][0]["missingActions"] == ["create", "edit", "delete"]


def test_analyze_gaps_merges_catalog_reads(admin):
    status = [TableRlsStatus(table_name="pages", rls_enabled=True, policy_count=2)]
    with patch("core.policy_analyzer.get_table_rls_status", return_value=status), \
         patch("core.policy_analyzer.get_seeded_permissions", return_value=_seed(("admin", "*"), ("viewer", "pages.view"))), \
         patch("core.policy_analyzer.get_all_policies", return_value=PAGE_POLICIES):
        analysis = analyze_gaps(admin, engine=None)

    assert [m.permission for m in analysis.missing_permissions] == ["pages.edit"]
    assert analysis.tables_without_policies == []
    assert analysis.incomplete_crud == []


def test_analyze_gaps_requires_roles_view(viewer):
    with patch("core.policy_analyzer.get_table_rls_status") as status:
        with pytest.raises(ForbiddenError):
            analyze_gaps(viewer, engine=None)
    status.assert_not_called()


def test_catalog_read_failure(resource_engine):
    # SQLite has no role_permissions table
    with pytest.raises(CatalogUnavailableError) as exc:
        get_seeded_permissions(resource_engine)
    assert exc.value.status_code == 503
