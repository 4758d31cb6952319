from unittest.mock import MagicMock, patch

from core.catalog_reader import list_base_tables
from core.relationships import detect_forward, detect_reverse, scan_foreign_keys


def test_detect_forward_many_to_one(resource_engine):
    edges = detect_forward(resource_engine, "orders")
    assert len(edges) == 1
    edge = edges[0]
    assert edge.direction == "forward"
    assert edge.relationship_type == "many_to_one"
    assert (edge.source_table, edge.source_column) == ("orders", "customer_id")
    assert (edge.target_table, edge.target_column) == ("customers", "id")
    assert edge.constraint_name == "fk_orders_customer"
    assert edge.label_field == "name"


def test_detect_reverse_one_to_many(resource_engine):
    edges = detect_reverse(resource_engine, "customers")
    assert [(e.source_table, e.source_column) for e in edges] == [("orders", "customer_id")]
    assert edges[0].relationship_type == "one_to_many"
    assert edges[0].target_table == "customers"
    assert edges[0].label_field is None


def test_table_without_foreign_keys(resource_engine):
    assert detect_forward(resource_engine, "notes") == []
    assert detect_reverse(resource_engine, "notes") == []


def test_self_reference_yields_one_edge_each_way(resource_engine):
    forward = detect_forward(resource_engine, "employees")
    reverse = detect_reverse(resource_engine, "employees")
    assert len(forward) == 1
    assert len(reverse) == 1
    assert forward[0].source_column == reverse[0].source_column == "manager_id"
    assert forward[0].id != reverse[0].id


def test_forward_and_reverse_agree_for_every_fk(resource_engine):
    tables = list_base_tables(resource_engine)
    forward_pairs = {
        (e.source_table, e.source_column, e.target_table, e.target_column)
        for t in tables for e in detect_forward(resource_engine, t)
    }
    reverse_pairs = {
        (e.source_table, e.source_column, e.target_table, e.target_column)
        for t in tables for e in detect_reverse(resource_engine, t)
    }
    assert forward_pairs == reverse_pairs
    assert ("order_items", "order_id", "orders", "id") in forward_pairs


def test_detection_is_idempotent(resource_engine):
    first = [e.model_dump_json() for e in detect_reverse(resource_engine, "orders")]
    second = [e.model_dump_json() for e in detect_reverse(resource_engine, "orders")]
    assert first == second


def test_scan_matches_per_table_detection(resource_engine):
    scanned = scan_foreign_keys(resource_engine)
    assert sorted(scanned) == list_base_tables(resource_engine)
    for table, (forward, reverse) in scanned.items():
        assert forward == detect_forward(resource_engine, table)
        assert reverse == detect_reverse(resource_engine, table)


def _fake_inspector():
    fks = {
        "orders": [
            {"name": "fk_orders_customer", "constrained_columns": ["customer_id"],
             "referred_schema": None, "referred_table": "customers", "referred_columns": ["id"]},
            {"name": "fk_orders_auditor", "constrained_columns": ["auditor_id"],
             "referred_schema": "audit", "referred_table": "customers", "referred_columns": ["id"]},
        ],
        "customers": [],
    }
    insp = MagicMock()
    insp.get_table_names.return_value = list(fks)
    insp.get_foreign_keys.side_effect = lambda table, schema=None: fks[table]
    insp.get_columns.return_value = [{"name": "id"}, {"name": "name"}]
    return insp


def test_cross_schema_foreign_keys_are_ignored(resource_engine):
    with patch("core.catalog_reader.inspect", return_value=_fake_inspector()):
        forward = detect_forward(resource_engine, "orders")
        reverse = detect_reverse(resource_engine, "customers")
        scanned = scan_foreign_keys(resource_engine)

    assert [e.source_column for e in forward] == ["customer_id"]
    assert [e.source_column for e in reverse] == ["customer_id"]
    assert scanned["orders"][0] == forward
    assert scanned["customers"][1] == reverse
