"""
Data query service: runs compiled queries against the resource store.

The enriched statement (joins for related-record labels) is tried first; if it
fails for any reason the service logs the downgrade and runs the unenriched
fallback. Only when both fail is an error reported, translated into an
approximate user-facing cause.
"""
import logging
import re
from typing import Any, Optional
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from core import catalog_reader
from core.cache import MetadataCache
from core.db_connector import scoped_connection
from core.errors import QueryFailedError, RecordNotFoundError, TableNotFoundError, ValidationFailedError
from core.metadata_store import MetadataStore
from core.permissions import require_capability
from core.query_compiler import (
    CompiledQuery,
    compile_count,
    compile_fallback_select,
    compile_record_lookup,
    compile_select,
    compute_pagination,
    validate_identifier,
    validate_request,
)
from models.query import QueryRequest, QueryResult, RecordResult
from models.table import TableRecord, TableSchema
from models.tenant import TenantContext

logger = logging.getLogger(__name__)

_COLUMN_IN_ERROR = re.compile(r'(?:no such column: |column "?)([\w.]+)')


def classify_query_error(error: Exception, table: str) -> QueryFailedError:
    """Map a driver error onto a coarse cause and a message safe to show a user."""
    raw = str(getattr(error, "orig", None) or error)
    msg = raw.lower()

    if "duplicate key" in msg or "duplicate alias" in msg or "ambiguous column" in msg:
        return QueryFailedError(table, "configuration",
                                f'There was a configuration issue with the "{table}" table. '
                                "The query could not be completed due to a duplicate field reference.", raw)
    if "no such column" in msg or ("column" in msg and "does not exist" in msg):
        match = _COLUMN_IN_ERROR.search(raw)
        # Statements alias the base table, so drop the "t." qualifier
        column = match.group(1).rsplit(".", 1)[-1] if match else "unknown"
        return QueryFailedError(table, "unknown_column",
                                f'The column "{column}" does not exist in the "{table}" table.', raw)
    if "no such table" in msg or ("relation" in msg and "does not exist" in msg):
        return QueryFailedError(table, "missing_table",
                                f'The table "{table}" does not exist or is not accessible.', raw)
    if "permission denied" in msg:
        return QueryFailedError(table, "permission_denied",
                                f'You don\'t have permission to access the "{table}" table.', raw)
    if "syntax error" in msg:
        return QueryFailedError(table, "syntax",
                                "There was an issue with the query syntax. Please try a simpler query.", raw)
    if "timeout" in msg or "canceling statement" in msg:
        return QueryFailedError(table, "timeout",
                                "The query took too long to execute. Try adding more specific filters "
                                "or reducing the limit.", raw)
    return QueryFailedError(table, "generic",
                            f'Unable to query the "{table}" table. Please try again or contact support '
                            "if the issue persists.", raw)


def _fetch(conn: Connection, query: CompiledQuery) -> list[dict[str, Any]]:
    return [dict(row) for row in conn.execute(query.statement(), query.params).mappings()]


def _count(conn: Connection, query: CompiledQuery) -> int:
    return int(conn.execute(query.statement(), query.params).scalar() or 0)


class QueryService:
    def __init__(self, resource_engine: Engine, store: MetadataStore, cache: MetadataCache, max_limit: int = 1000):
        self.resource_engine = resource_engine
        self.store = store
        self.cache = cache
        self.max_limit = max_limit

    def get_table_record(self, tenant: TenantContext, table: str) -> Optional[TableRecord]:
        return self.cache.get_or_load(
            tenant.workspace_id, table, lambda: self.store.get_table_config(tenant.workspace_id, table)
        )

    def _run(self, req: QueryRequest, select: Optional[CompiledQuery]) -> tuple[int, list[dict[str, Any]]]:
        with scoped_connection(self.resource_engine) as conn:
            total = _count(conn, compile_count(req))
            rows = _fetch(conn, select) if select is not None and req.limit > 0 else []
        return total, rows

    def query_table(self, tenant: TenantContext, req: QueryRequest) -> QueryResult:
        require_capability(tenant, "data.view")
        validate_request(req, self.max_limit)

        record = self.get_table_record(tenant, req.table_name)
        if record is None:
            raise TableNotFoundError(req.table_name)

        try:
            enriched = compile_select(req, record.config.forward_relationships)
            total, rows = self._run(req, enriched)
        except Exception as e:
            logger.warning("Enriched query failed for %s, falling back to plain select: %s", req.table_name, e)
            try:
                total, rows = self._run(req, compile_fallback_select(req))
            except SQLAlchemyError as fallback_error:
                logger.error("Fallback query also failed for %s: %s", req.table_name, fallback_error)
                raise classify_query_error(fallback_error, req.table_name) from fallback_error
            logger.info("Fallback query succeeded for %s: %d rows", req.table_name, len(rows))

        return QueryResult(
            table_name=req.table_name,
            columns=list(rows[0].keys()) if rows else [],
            rows=rows,
            pagination=compute_pagination(req.page, req.limit, total),
        )

    def get_record(self, tenant: TenantContext, table: str, record_id: str,
                   id_column: Optional[str] = None) -> RecordResult:
        """
        Single-row lookup. Without an explicit ``id_column`` the synced primary
        key is used (``id`` for tables never synced); a synced table without a
        single-column primary key has no per-record addressing.
        """
        require_capability(tenant, "data.view")
        validate_identifier(table, "table")
        if id_column is not None:
            validate_identifier(id_column, "idColumn")
        if not record_id:
            raise ValidationFailedError.single("id", "Record identifier is required")

        if id_column is None:
            synced = self.get_table_record(tenant, table)
            if synced is None:
                id_column = "id"
            elif synced.config.primary_key_column:
                id_column = synced.config.primary_key_column
            else:
                raise ValidationFailedError.single(
                    "idColumn", f"'{table}' has no single-column primary key; specify idColumn"
                )

        query = compile_record_lookup(table, id_column, record_id)
        try:
            with scoped_connection(self.resource_engine) as conn:
                rows = _fetch(conn, query)
        except SQLAlchemyError as e:
            raise classify_query_error(e, table) from e

        if not rows:
            raise RecordNotFoundError(table, record_id)
        return RecordResult(table_name=table, record=rows[0], columns=list(rows[0].keys()))

    def describe_table(self, tenant: TenantContext, table: str) -> TableSchema:
        """Live column list straight from the catalog, whether or not the table was synced."""
        require_capability(tenant, "data.view")
        validate_identifier(table, "table")
        return TableSchema(table_name=table, columns=catalog_reader.list_columns(self.resource_engine, table))
