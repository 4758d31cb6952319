#!/usr/bin/env python3
"""
Seed a local SQLite resource database with demo data for Tabula development.
Usage (from the repository root):
    python scripts/seed_demo_db.py
Creates: scripts/demo.db
Then point the API at it:
    RESOURCE_DATABASE_URL=sqlite:///scripts/demo.db APP_MODE=local uvicorn main:app --app-dir backend
"""
import sqlite3
import random
from datetime import datetime, timedelta
from pathlib import Path

DB_PATH = Path(__file__).parent / "demo.db"

DDL = [
    """
    CREATE TABLE IF NOT EXISTS customers (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT    NOT NULL,
        email       TEXT    UNIQUE NOT NULL,
        country     TEXT,
        created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    """
    CREATE TABLE IF NOT EXISTS products (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        sku         TEXT    UNIQUE NOT NULL,
        title       TEXT    NOT NULL,
        category    TEXT,
        price       REAL    NOT NULL
    )""",
    """
    CREATE TABLE IF NOT EXISTS orders (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id     INTEGER NOT NULL,
        order_date      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        status          TEXT,
        total_amount    REAL,
        CONSTRAINT fk_orders_customer FOREIGN KEY (customer_id) REFERENCES customers (id)
    )""",
    """
    CREATE TABLE IF NOT EXISTS order_items (
        order_id    INTEGER NOT NULL,
        line_no     INTEGER NOT NULL,
        product_id  INTEGER NOT NULL,
        quantity    INTEGER NOT NULL,
        unit_price  REAL    NOT NULL,
        PRIMARY KEY (order_id, line_no),
        CONSTRAINT fk_items_order FOREIGN KEY (order_id) REFERENCES orders (id),
        CONSTRAINT fk_items_product FOREIGN KEY (product_id) REFERENCES products (id)
    )""",
    """
    CREATE TABLE IF NOT EXISTS employees (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT NOT NULL,
        manager_id  INTEGER,
        CONSTRAINT fk_employees_manager FOREIGN KEY (manager_id) REFERENCES employees (id)
    )""",
    # Product-internal table, skipped by sync in local mode
    """
    CREATE TABLE IF NOT EXISTS users (
        id      TEXT PRIMARY KEY,
        email   TEXT UNIQUE NOT NULL
    )""",
    """
    CREATE TABLE IF NOT EXISTS role_permissions (
        role_id     TEXT NOT NULL,
        permission  TEXT NOT NULL,
        description TEXT,
        PRIMARY KEY (role_id, permission)
    )""",
]

STATUSES = ['pending', 'processing', 'shipped', 'cancelled', 'delivered']
CATEGORIES = ['Electronics', 'Clothing', 'Books', 'Home & Garden', 'Sports']

ROLE_PERMISSIONS = [
    ("admin", "*", "Full access"),
    ("builder", "pages.view", None),
    ("builder", "pages.edit", None),
    ("builder", "tables.view", None),
    ("builder", "tables.edit", None),
    ("user", "data.view", None),
    ("user", "data.create", None),
    ("user", "data.edit", None),
    ("viewer", "pages.view", None),
    ("viewer", "data.view", None),
]


def seed():
    conn = sqlite3.connect(DB_PATH)
    cur  = conn.cursor()

    for stmt in DDL:
        cur.execute(stmt)

    # customers (150)
    for i in range(1, 151):
        cur.execute("INSERT OR IGNORE INTO customers(name, email, country, created_at) VALUES (?,?,?,?)",
                    (f"Customer {i}", f"user{i}@example.com",
                     random.choice(["US", "UK", "DE", "IN", "JP"]),
                     datetime.now() - timedelta(days=random.randint(10, 730))))

    # products (40)
    for i in range(1, 41):
        cur.execute("INSERT OR IGNORE INTO products(sku, title, category, price) VALUES (?,?,?,?)",
                    (f"SKU-{i:04d}", f"Product {i}", random.choice(CATEGORIES),
                     round(random.uniform(5, 500), 2)))

    # orders + order_items (500 orders)
    for _ in range(500):
        order_dt = datetime.now() - timedelta(days=random.randint(0, 365))
        cur.execute("INSERT INTO orders(customer_id, order_date, status) VALUES (?,?,?)",
                    (random.randint(1, 150), order_dt, random.choice(STATUSES)))
        order_id = cur.lastrowid

        total = 0
        for line_no in range(1, random.randint(2, 5)):
            qty   = random.randint(1, 5)
            price = round(random.uniform(5, 500), 2)
            total += qty * price
            cur.execute("INSERT INTO order_items(order_id, line_no, product_id, quantity, unit_price) "
                        "VALUES (?,?,?,?,?)",
                        (order_id, line_no, random.randint(1, 40), qty, price))

        cur.execute("UPDATE orders SET total_amount=? WHERE id=?", (round(total, 2), order_id))

    # employees: one manager, a handful of reports
    cur.execute("INSERT INTO employees(name, manager_id) VALUES (?, NULL)", ("Head of Ops",))
    boss_id = cur.lastrowid
    for i in range(1, 6):
        cur.execute("INSERT INTO employees(name, manager_id) VALUES (?,?)", (f"Operator {i}", boss_id))

    cur.executemany("INSERT OR IGNORE INTO users(id, email) VALUES (?,?)",
                    [(f"u{i}", f"member{i}@example.com") for i in range(1, 4)])
    cur.executemany("INSERT OR IGNORE INTO role_permissions(role_id, permission, description) VALUES (?,?,?)",
                    ROLE_PERMISSIONS)

    conn.commit()
    conn.close()
    print(f"Demo database seeded: {DB_PATH}")
    print("   Tables: customers, products, orders, order_items, employees, users, role_permissions")


if __name__ == "__main__":
    seed()
