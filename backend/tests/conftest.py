import os
import sys

# Add the parent directory (backend) to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
import sqlite3
import tempfile
from fastapi.testclient import TestClient

from config import settings
from core.cache import MetadataCache
from core.db_connector import create_store_engine
from core.metadata_store import MetadataStore
from core.table_sync import TableSyncService
from core.data_query import QueryService
from models.tenant import TenantContext

SCHEMA = [
    """
    CREATE TABLE customers (
        id      INTEGER PRIMARY KEY,
        name    TEXT NOT NULL,
        email   TEXT,
        UNIQUE (email)
    )""",
    """
    CREATE TABLE orders (
        id           INTEGER PRIMARY KEY,
        customer_id  INTEGER NOT NULL,
        status       TEXT,
        total        REAL,
        CONSTRAINT fk_orders_customer FOREIGN KEY (customer_id) REFERENCES customers (id)
    )""",
    """
    CREATE TABLE employees (
        id          INTEGER PRIMARY KEY,
        name        TEXT,
        manager_id  INTEGER,
        CONSTRAINT fk_employees_manager FOREIGN KEY (manager_id) REFERENCES employees (id)
    )""",
    """
    CREATE TABLE order_items (
        order_id    INTEGER NOT NULL,
        line_no     INTEGER NOT NULL,
        sku         TEXT,
        PRIMARY KEY (order_id, line_no),
        CONSTRAINT fk_items_order FOREIGN KEY (order_id) REFERENCES orders (id)
    )""",
    "CREATE TABLE notes (body TEXT)",
]

ROWS = [
    "INSERT INTO customers (id, name, email) VALUES (1, 'Ada Lovelace', 'ada@example.com')",
    "INSERT INTO customers (id, name, email) VALUES (2, 'Grace Hopper', 'grace@example.com')",
    "INSERT INTO customers (id, name, email) VALUES (3, 'Alan Turing', NULL)",
    "INSERT INTO orders (id, customer_id, status, total) VALUES (1, 1, 'paid', 120.0)",
    "INSERT INTO orders (id, customer_id, status, total) VALUES (2, 1, 'pending', 35.5)",
    "INSERT INTO orders (id, customer_id, status, total) VALUES (3, 2, 'paid', 80.0)",
    "INSERT INTO orders (id, customer_id, status, total) VALUES (4, 3, NULL, 10.0)",
    "INSERT INTO orders (id, customer_id, status, total) VALUES (5, 2, 'Refunded', 99.0)",
    "INSERT INTO employees (id, name, manager_id) VALUES (1, 'Boss', NULL)",
    "INSERT INTO employees (id, name, manager_id) VALUES (2, 'Report', 1)",
]


def _temp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path


@pytest.fixture
def resource_db_path():
    path = _temp_db_path()
    conn = sqlite3.connect(path)
    cur = conn.cursor()
    for ddl in SCHEMA + ROWS:
        cur.execute(ddl)
    conn.commit()
    conn.close()
    try:
        yield path
    finally:
        os.remove(path)


@pytest.fixture
def metadata_db_path():
    path = _temp_db_path()
    try:
        yield path
    finally:
        os.remove(path)


@pytest.fixture
def resource_engine(resource_db_path):
    engine = create_store_engine(f"sqlite:///{resource_db_path}")
    yield engine
    engine.dispose()


@pytest.fixture
def store(metadata_db_path):
    engine = create_store_engine(f"sqlite:///{metadata_db_path}")
    store = MetadataStore(engine)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def cache():
    return MetadataCache(ttl_seconds=60, max_entries=16)


@pytest.fixture
def sync_service(resource_engine, store, cache):
    return TableSyncService(resource_engine, store, cache, workers=4)


@pytest.fixture
def query_service(resource_engine, store, cache):
    return QueryService(resource_engine, store, cache, max_limit=1000)


@pytest.fixture
def admin():
    return TenantContext(workspace_id="ws1", user_id="u1", roles=["admin"])


@pytest.fixture
def viewer():
    return TenantContext(workspace_id="ws1", user_id="u2", roles=["viewer"])


ADMIN_HEADERS = {"X-Workspace-Id": "ws1", "X-User-Id": "u1", "X-User-Roles": "admin"}
VIEWER_HEADERS = {"X-Workspace-Id": "ws1", "X-User-Id": "u2", "X-User-Roles": "viewer"}


@pytest.fixture
def client(resource_db_path, metadata_db_path, monkeypatch):
    monkeypatch.setattr(settings, "RESOURCE_DATABASE_URL", f"sqlite:///{resource_db_path}")
    monkeypatch.setattr(settings, "METADATA_DATABASE_URL", f"sqlite:///{metadata_db_path}")
    monkeypatch.setattr(settings, "APP_MODE", "hosted")

    from main import app
    with TestClient(app) as test_client:
        yield test_client
