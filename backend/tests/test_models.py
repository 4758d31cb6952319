import pytest
from models.query import FilterDescriptor, Pagination, QueryRequest, QueryResult
from models.table import PLACEHOLDER_FIELDS, RelationshipConfig, SyncResponse, TableConfig
from models.tenant import TenantContext


def test_tenant_context_defaults():
    tenant = TenantContext(workspace_id="ws1", user_id="u1")
    assert tenant.roles == []
    assert tenant.mode == "hosted"


def test_filter_descriptor_defaults_to_equals():
    f = FilterDescriptor(column="status", value="paid")
    assert f.operator == "equals"


def test_query_request_defaults():
    req = QueryRequest(table_name="orders")
    assert (req.page, req.limit, req.order_direction) == (1, 100, "asc")
    assert req.filters == []


def test_query_result_camel_case():
    result = QueryResult(
        table_name="orders",
        columns=["id"],
        rows=[{"id": 1}],
        pagination=Pagination(page=1, limit=10, total_rows=1, total_pages=1,
                              has_next_page=False, has_previous_page=False),
    )
    body = result.model_dump(by_alias=True)
    assert body["tableName"] == "orders"
    assert body["pagination"]["totalRows"] == 1


def test_table_config_placeholders_and_extras():
    config = TableConfig(custom_layout={"cols": 2})
    for name in PLACEHOLDER_FIELDS:
        assert getattr(config, name) == []
    assert config.model_dump()["custom_layout"] == {"cols": 2}
    assert config.table_type == "base_table"


def test_forward_relationships_filter():
    edge = dict(source_table="orders", source_column="customer_id", target_table="customers", target_column="id")
    config = TableConfig(relationships=[
        RelationshipConfig(id="f", direction="forward", relationship_type="many_to_one", **edge),
        RelationshipConfig(id="r", direction="reverse", relationship_type="one_to_many", **edge),
    ])
    assert [r.id for r in config.forward_relationships] == ["f"]


def test_relationship_direction_is_constrained():
    with pytest.raises(ValueError):
        RelationshipConfig(id="x", direction="sideways", relationship_type="many_to_one",
                           source_table="a", source_column="b", target_table="c", target_column="d")


def test_sync_response():
    resp = SyncResponse(success=True, synced=0, total=0, message="No data tables to sync")
    assert resp.results == []
