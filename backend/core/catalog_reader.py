"""
Catalog reader: columns, primary keys, uniqueness and comments for one table.

All reads go through SQLAlchemy's inspector, which issues the read-only
catalog queries appropriate to the dialect (information_schema / pg_catalog on
PostgreSQL, PRAGMA on SQLite). Each call borrows its own pooled connection so
independent reads can run concurrently.
"""
import logging
from typing import Callable, Optional, TypeVar
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from core.db_connector import get_default_schema, scoped_connection
from core.errors import CatalogUnavailableError, TableNotFoundError
from models.table import ColumnInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_inspector(engine: Engine, table: Optional[str], read: Callable[[Inspector, Optional[str]], T]) -> T:
    """Run ``read(inspector, schema)`` on a scoped connection, translating driver errors."""
    schema = get_default_schema(engine)
    try:
        with scoped_connection(engine) as conn:
            return read(inspect(conn), schema)
    except NoSuchTableError as e:
        raise TableNotFoundError(table or str(e)) from e
    except SQLAlchemyError as e:
        logger.warning("Catalog read failed for %s: %s", table or "schema", e)
        raise CatalogUnavailableError(table, str(e)) from e


def normalize_type(raw_type) -> str:
    """VARCHAR(255) -> varchar, TIMESTAMP -> timestamp."""
    data_type = str(raw_type).lower()
    if "(" in data_type:
        data_type = data_type.split("(")[0]
    return data_type.strip()


def list_base_tables(engine: Engine) -> list[str]:
    return with_inspector(engine, None, lambda insp, schema: sorted(insp.get_table_names(schema=schema)))


def list_columns(engine: Engine, table: str) -> list[ColumnInfo]:
    """Columns in physical order; raises TableNotFoundError when the catalog has none."""

    def read(insp: Inspector, schema: Optional[str]) -> list[ColumnInfo]:
        raw_cols = insp.get_columns(table, schema=schema)
        if not raw_cols:
            raise NoSuchTableError(table)
        unique_cols: set[str] = set()
        for uc in insp.get_unique_constraints(table, schema=schema):
            unique_cols.update(uc.get("column_names") or [])
        return [
            ColumnInfo(
                name=col["name"],
                data_type=normalize_type(col["type"]),
                is_nullable=col.get("nullable", True),
                default=None if col.get("default") is None else str(col["default"]),
                is_unique=col["name"] in unique_cols,
            )
            for col in raw_cols
        ]

    return with_inspector(engine, table, read)


def get_primary_key(engine: Engine, table: str) -> Optional[str]:
    """The single column backing the PRIMARY KEY, or None for no key / composite key."""

    def read(insp: Inspector, schema: Optional[str]) -> Optional[str]:
        pk_cols = insp.get_pk_constraint(table, schema=schema).get("constrained_columns") or []
        if len(pk_cols) > 1:
            logger.debug("Composite primary key on %s ignored: %s", table, pk_cols)
        return pk_cols[0] if len(pk_cols) == 1 else None

    return with_inspector(engine, table, read)


def get_comments(engine: Engine, tables: list[str]) -> dict[str, Optional[str]]:
    """Bulk lookup of table comments; dialects without comment support yield None."""
    if not tables:
        return {}
    if not engine.dialect.supports_comments:
        return {t: None for t in tables}

    def read(insp: Inspector, schema: Optional[str]) -> dict[str, Optional[str]]:
        return {t: insp.get_table_comment(t, schema=schema).get("text") for t in tables}

    return with_inspector(engine, tables[0] if len(tables) == 1 else None, read)
