"""
Dynamic query compiler: (table, filters, sort, page) -> COUNT + bounded SELECT.

Compilation is a strict two-stage pipeline:
  1. every identifier (table, filter column, sort column, relationship
     columns) is checked against IDENTIFIER_PATTERN and rejected, never escaped;
  2. the statement is assembled with only those pre-validated identifiers
     embedded; every value, including LIMIT and OFFSET, is a bound parameter.
"""
import logging
import math
import re
from typing import Any, Optional
from pydantic import BaseModel, Field
from sqlalchemy import TextClause, text

from core.errors import ValidationFailedError
from models.query import FILTER_OPERATORS, FilterDescriptor, Pagination, QueryRequest
from models.table import RelationshipConfig

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

# Every statement qualifies its columns with this alias: SQLite reads an
# unmatched double-quoted identifier as a string literal.
BASE_ALIAS = "t"
LABEL_SUFFIX = "__label"

_COMPARISONS = {
    "equals": "=",
    "not_equals": "!=",
    "greater_than": ">",
    "less_than": "<",
    "greater_than_or_equal": ">=",
    "less_than_or_equal": "<=",
}


class CompiledQuery(BaseModel):
    sql: str
    params: dict[str, Any] = Field(default_factory=dict)

    def statement(self) -> TextClause:
        return text(self.sql)


# ── Validation ────────────────────────────────────────────────────────────────

def is_valid_identifier(name: Optional[str]) -> bool:
    return bool(name) and IDENTIFIER_PATTERN.fullmatch(name) is not None


def validate_identifier(name: Optional[str], field: str) -> str:
    if not is_valid_identifier(name):
        raise ValidationFailedError.single(
            field, f"'{name}' is invalid; only letters, numbers and underscores are allowed"
        )
    return name


def validate_request(req: QueryRequest, max_limit: int) -> None:
    """Collect every problem with the request before any SQL is built."""
    issues: list[dict] = []
    if not is_valid_identifier(req.table_name):
        issues.append({"field": "table", "message": f"'{req.table_name}' is not a valid table name"})
    for i, f in enumerate(req.filters):
        if not is_valid_identifier(f.column):
            issues.append({"field": f"filters[{i}].column", "message": f"'{f.column}' is not a valid column name"})
        if f.operator not in FILTER_OPERATORS:
            issues.append({"field": f"filters[{i}].operator", "message": f"unknown operator '{f.operator}'"})
    if req.order_by is not None and not is_valid_identifier(req.order_by):
        issues.append({"field": "order_by", "message": f"'{req.order_by}' is not a valid column name"})
    if req.page < 1:
        issues.append({"field": "page", "message": "page must be >= 1"})
    if req.limit < 0 or req.limit > max_limit:
        issues.append({"field": "limit", "message": f"limit must be between 0 and {max_limit}"})
    if issues:
        raise ValidationFailedError(issues)


# ── Fragments ─────────────────────────────────────────────────────────────────

def _col(column: str, alias: Optional[str]) -> str:
    return f'"{alias}"."{column}"' if alias else f'"{column}"'


def compile_filters(filters: list[FilterDescriptor], alias: Optional[str] = None) -> tuple[str, dict[str, Any]]:
    """Conjunctive WHERE clause (or empty string) and its bound parameters."""
    predicates: list[str] = []
    params: dict[str, Any] = {}
    for i, f in enumerate(filters):
        col = _col(validate_identifier(f.column, f"filters[{i}].column"), alias)
        param = f"p{i}"
        if f.operator == "is_null":
            predicates.append(f"{col} IS NULL")
        elif f.operator == "is_not_null":
            predicates.append(f"{col} IS NOT NULL")
        elif f.operator not in FILTER_OPERATORS:
            raise ValidationFailedError.single(f"filters[{i}].operator", f"unknown operator '{f.operator}'")
        elif f.value is None:
            # A comparison without a value places no constraint
            continue
        elif f.operator == "contains":
            predicates.append(f"LOWER(CAST({col} AS TEXT)) LIKE LOWER(:{param})")
            params[param] = f"%{f.value}%"
        else:
            predicates.append(f"{col} {_COMPARISONS[f.operator]} :{param}")
            params[param] = f.value
    if not predicates:
        return "", params
    return "WHERE " + " AND ".join(predicates), params


def _order_clause(req: QueryRequest, alias: Optional[str]) -> str:
    if not req.order_by:
        return ""
    direction = "DESC" if req.order_direction == "desc" else "ASC"
    return f"ORDER BY {_col(validate_identifier(req.order_by, 'order_by'), alias)} {direction}"


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def _join(parts: list[str]) -> str:
    return " ".join(p for p in parts if p)


# ── Statements ────────────────────────────────────────────────────────────────

def compile_count(req: QueryRequest) -> CompiledQuery:
    table = validate_identifier(req.table_name, "table")
    where, params = compile_filters(req.filters, BASE_ALIAS)
    sql = _join([f'SELECT COUNT(*) AS count FROM "{table}" AS "{BASE_ALIAS}"', where])
    return CompiledQuery(sql=sql, params=params)


def compile_select(req: QueryRequest, relationships: list[RelationshipConfig]) -> CompiledQuery:
    """SELECT enriched with a label column per forward relationship that has a label field."""
    table = validate_identifier(req.table_name, "table")
    selects = [f'"{BASE_ALIAS}".*']
    joins: list[str] = []
    for n, rel in enumerate(r for r in relationships if r.direction == "forward" and r.label_field):
        alias = f"r{n}"
        target = validate_identifier(rel.target_table, "relationship.target_table")
        target_col = validate_identifier(rel.target_column, "relationship.target_column")
        source_col = validate_identifier(rel.source_column, "relationship.source_column")
        label = validate_identifier(rel.label_field, "relationship.label_field")
        selects.append(f'"{alias}"."{label}" AS "{source_col}{LABEL_SUFFIX}"')
        joins.append(f'LEFT JOIN "{target}" AS "{alias}" ON "{alias}"."{target_col}" = "{BASE_ALIAS}"."{source_col}"')

    where, params = compile_filters(req.filters, BASE_ALIAS)
    params.update(limit=req.limit, offset=offset_for(req.page, req.limit))
    sql = _join([
        f"SELECT {', '.join(selects)}",
        f'FROM "{table}" AS "{BASE_ALIAS}"',
        *joins,
        where,
        _order_clause(req, BASE_ALIAS),
        "LIMIT :limit OFFSET :offset",
    ])
    return CompiledQuery(sql=sql, params=params)


def compile_fallback_select(req: QueryRequest) -> CompiledQuery:
    """Unenriched select with the same filters, sort and window, no joins."""
    table = validate_identifier(req.table_name, "table")
    where, params = compile_filters(req.filters, BASE_ALIAS)
    params.update(limit=req.limit, offset=offset_for(req.page, req.limit))
    sql = _join([
        f'SELECT "{BASE_ALIAS}".* FROM "{table}" AS "{BASE_ALIAS}"',
        where,
        _order_clause(req, BASE_ALIAS),
        "LIMIT :limit OFFSET :offset",
    ])
    return CompiledQuery(sql=sql, params=params)


def compile_record_lookup(table: str, id_column: str, record_id: str) -> CompiledQuery:
    table = validate_identifier(table, "table")
    id_column = validate_identifier(id_column, "idColumn")
    return CompiledQuery(
        sql=f'SELECT "{BASE_ALIAS}".* FROM "{table}" AS "{BASE_ALIAS}" WHERE {_col(id_column, BASE_ALIAS)} = :id LIMIT 1',
        params={"id": record_id},
    )


def compute_pagination(page: int, limit: int, total_rows: int) -> Pagination:
    total_pages = 0 if limit == 0 else math.ceil(total_rows / limit)
    return Pagination(
        page=page,
        limit=limit,
        total_rows=total_rows,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
