"""
Database connector: SQLAlchemy engine factory and scoped connections.
Supports SQLite and PostgreSQL. One pooled engine per store lives for the
lifetime of the process; every connection is borrowed through a context
manager so it goes back to the pool on all exit paths.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from config import settings

logger = logging.getLogger(__name__)


def create_store_engine(url: str) -> Engine:
    """Build a pooled SQLAlchemy engine; connections are checked on checkout."""
    engine = create_engine(url, pool_pre_ping=True)
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_default_schema(engine: Engine) -> Optional[str]:
    if engine.dialect.name == "postgresql":
        return settings.CATALOG_SCHEMA
    return None   # SQLite has no schema concept


def qualify(table: str, schema: Optional[str]) -> str:
    """Quote a pre-validated table name, qualified with schema if present."""
    return f'"{schema}"."{table}"' if schema else f'"{table}"'


@contextmanager
def scoped_connection(engine: Engine) -> Iterator[Connection]:
    """Borrow a connection that is always returned to the pool."""
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()


def ping(engine: Engine) -> bool:
    with scoped_connection(engine) as conn:
        return conn.execute(text("SELECT 1")).scalar() == 1
