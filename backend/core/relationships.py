"""
Relationship detector: foreign-key edges touching a table, in both directions.

Forward edges come from the table's own FK constraints (many-to-one); reverse
edges come from scanning every table of the schema for constraints that refer
back to it (one-to-many). Both are materialised explicitly and sorted so that
repeated detection on an unchanged schema yields identical output. Constraints
that point into another schema are ignored: every query is compiled against
the configured schema only.
"""
import logging
from typing import Callable, Optional
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector

from core.catalog_reader import with_inspector
from models.table import RelationshipConfig

logger = logging.getLogger(__name__)

# Preferred columns for human-readable labels of a referenced row, in order.
LABEL_FIELD_CANDIDATES = ("name", "title", "label", "display_name", "email", "slug")

Edges = tuple[list[RelationshipConfig], list[RelationshipConfig]]


def _edge_id(direction: str, constraint: Optional[str], src: str, src_col: str, tgt: str, tgt_col: str) -> str:
    return f"{direction}:{constraint or 'fk'}:{src}.{src_col}->{tgt}.{tgt_col}"


def _sort_key(r: RelationshipConfig) -> tuple:
    return (r.source_table, r.source_column, r.target_table, r.target_column, r.constraint_name or "")


def _column_pairs(fk: dict) -> list[tuple[str, str]]:
    referred = fk.get("referred_columns") or []
    return list(zip(fk.get("constrained_columns") or [], referred))


def _same_schema(fk: dict, schema: Optional[str]) -> bool:
    return fk.get("referred_schema") in (None, schema)


def _label_picker(insp: Inspector, schema: Optional[str]) -> Callable[[str, str], Optional[str]]:
    """Label-field lookup that reads each referenced table's columns at most once."""
    columns: dict[str, set[str]] = {}

    def pick(table: str, key_column: str) -> Optional[str]:
        if table not in columns:
            columns[table] = {c["name"] for c in insp.get_columns(table, schema=schema)}
        for candidate in LABEL_FIELD_CANDIDATES:
            if candidate in columns[table] and candidate != key_column:
                return candidate
        return None

    return pick


def _forward_edges(table: str, fks: list[dict], schema: Optional[str],
                   pick_label: Callable[[str, str], Optional[str]]) -> list[RelationshipConfig]:
    result: list[RelationshipConfig] = []
    for fk in fks:
        if not _same_schema(fk, schema):
            logger.debug("Skipping cross-schema foreign key %s on %s", fk.get("name"), table)
            continue
        target = fk["referred_table"]
        for local_col, ref_col in _column_pairs(fk):
            result.append(RelationshipConfig(
                id=_edge_id("forward", fk.get("name"), table, local_col, target, ref_col),
                constraint_name=fk.get("name"),
                direction="forward",
                relationship_type="many_to_one",
                source_table=table,
                source_column=local_col,
                target_table=target,
                target_column=ref_col,
                label_field=pick_label(target, ref_col),
            ))
    return sorted(result, key=_sort_key)


def _reverse_edges(table: str, fks_by_table: dict[str, list[dict]],
                   schema: Optional[str]) -> list[RelationshipConfig]:
    result: list[RelationshipConfig] = []
    for other, fks in fks_by_table.items():
        for fk in fks:
            if fk["referred_table"] != table or not _same_schema(fk, schema):
                continue
            for local_col, ref_col in _column_pairs(fk):
                result.append(RelationshipConfig(
                    id=_edge_id("reverse", fk.get("name"), other, local_col, table, ref_col),
                    constraint_name=fk.get("name"),
                    direction="reverse",
                    relationship_type="one_to_many",
                    source_table=other,
                    source_column=local_col,
                    target_table=table,
                    target_column=ref_col,
                ))
    return sorted(result, key=_sort_key)


def detect_forward(engine: Engine, table: str) -> list[RelationshipConfig]:
    """Edges where ``table`` holds the foreign key."""

    def read(insp: Inspector, schema: Optional[str]) -> list[RelationshipConfig]:
        fks = insp.get_foreign_keys(table, schema=schema)
        return _forward_edges(table, fks, schema, _label_picker(insp, schema))

    return with_inspector(engine, table, read)


def detect_reverse(engine: Engine, table: str) -> list[RelationshipConfig]:
    """Edges where another table (or ``table`` itself) refers to ``table``."""

    def read(insp: Inspector, schema: Optional[str]) -> list[RelationshipConfig]:
        fks_by_table = {other: insp.get_foreign_keys(other, schema=schema)
                        for other in insp.get_table_names(schema=schema)}
        return _reverse_edges(table, fks_by_table, schema)

    return with_inspector(engine, table, read)


def scan_foreign_keys(engine: Engine) -> dict[str, Edges]:
    """
    Forward and reverse edges for every table of the schema from a single
    catalog pass. Used by bulk sync so each table's reverse edges do not cost
    another scan of the whole schema.
    """

    def read(insp: Inspector, schema: Optional[str]) -> dict[str, Edges]:
        fks_by_table = {t: insp.get_foreign_keys(t, schema=schema) for t in insp.get_table_names(schema=schema)}
        pick_label = _label_picker(insp, schema)
        return {
            table: (_forward_edges(table, fks, schema, pick_label), _reverse_edges(table, fks_by_table, schema))
            for table, fks in fks_by_table.items()
        }

    edges = with_inspector(engine, None, read)
    logger.debug("Scanned foreign keys of %d tables", len(edges))
    return edges
