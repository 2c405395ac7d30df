"""
Shared pytest fixtures.

FakeConnection stands in for a psycopg connection: it records every statement,
answers the handful of queries the package issues, simulates the four
sequences, and keeps row counts per table split into pending (uncommitted)
and committed.
"""

from __future__ import annotations

import os
import re
import threading
from decimal import Decimal

import psycopg
import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "pg: needs a live PostgreSQL (set PG_TEST_DSN)")


FAKE_PRICE = Decimal("9.99")

SEQ_FOR_TABLE = {
    "users": "user_sequence",
    "products": "product_sequence",
    "orders": "order_sequence",
    "order_items": "order_item_sequence",
}


class FakeCursor:
    def __init__(self, rows=None, rowcount=-1):
        self._rows = list(rows or [])
        self.rowcount = rowcount

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class FakeConnection:
    def __init__(self, user_ids=(), product_ids=(), fail_on: str | None = None):
        self.user_ids = list(user_ids)
        self.product_ids = list(product_ids)
        self.fail_on = fail_on
        # read side: email -> [(order_id, order_date)], order_id -> [(item_id, quantity, product_id)]
        self.orders_by_email: dict[str, list] = {}
        self.items_by_order: dict[int, list] = {}

        self.statements: list[tuple[str, object]] = []
        self.sequences = {seq: 1 for seq in SEQ_FOR_TABLE.values()}
        self.pending = {t: 0 for t in SEQ_FOR_TABLE}
        self.committed = {t: 0 for t in SEQ_FOR_TABLE}
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self._lock = threading.Lock()

    # psycopg surface -------------------------------------------------
    def execute(self, sql, params=None):
        with self._lock:
            self.statements.append((sql, params))
            if self.fail_on and self.fail_on in sql:
                raise psycopg.OperationalError(f"simulated failure on: {self.fail_on}")
            return self._answer(" ".join(sql.split()), params)

    def commit(self):
        with self._lock:
            for t, n in self.pending.items():
                self.committed[t] += n
                self.pending[t] = 0
            self.commits += 1

    def rollback(self):
        with self._lock:
            for t in self.pending:
                self.pending[t] = 0
            self.rollbacks += 1

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # helpers ----------------------------------------------------------
    def sql_matching(self, fragment: str) -> list[str]:
        return [s for s, _ in self.statements if fragment in s]

    def _nextval(self, seq: str) -> int:
        value = self.sequences[seq]
        self.sequences[seq] += 1
        return value

    def _answer(self, sql: str, params):
        if sql.startswith("SELECT id FROM users"):
            return FakeCursor([(i,) for i in self.user_ids])
        if sql.startswith("SELECT id FROM products"):
            return FakeCursor([(i,) for i in self.product_ids])

        if sql.startswith("SELECT id, username, email FROM users WHERE id"):
            uid = params[0]
            if uid not in self.user_ids:
                return FakeCursor([])
            return FakeCursor([(uid, f"user{uid}", f"user{uid}@example.com")])
        if sql.startswith("SELECT id, name, price FROM products WHERE id"):
            pid = params[0]
            if pid not in self.product_ids:
                return FakeCursor([])
            return FakeCursor([(pid, f"Product {pid}", FAKE_PRICE)])

        if sql.startswith("SELECT o.id, o.order_date FROM orders o"):
            return FakeCursor(self.orders_by_email.get(params[0], []))
        if sql.startswith("SELECT id, quantity, product_id FROM order_items WHERE order_id"):
            return FakeCursor(self.items_by_order.get(params[0], []))
        if sql.startswith("SELECT o.id, o.order_date, count(oi.id)"):
            rows = []
            for oid, odate in self.orders_by_email.get(params[0], []):
                items = self.items_by_order.get(oid, [])
                total = sum((FAKE_PRICE * q for _, q, _ in items), Decimal(0))
                rows.append((oid, odate, len(items), total))
            return FakeCursor(rows)

        if "generate_series" in sql and "nextval('order_sequence')" in sql:
            return FakeCursor([(self._nextval("order_sequence"),) for _ in range(params[0])])

        m = re.match(r"TRUNCATE TABLE (\w+)", sql)
        if m:
            self.committed[m.group(1)] = 0
            self.pending[m.group(1)] = 0
            return FakeCursor()

        m = re.match(r"ALTER SEQUENCE (\w+) RESTART WITH (\d+)", sql)
        if m:
            self.sequences[m.group(1)] = int(m.group(2))
            return FakeCursor()

        m = re.match(r"INSERT INTO (\w+)", sql)
        if m:
            return self._insert(m.group(1), sql, params)

        return FakeCursor()

    def _insert(self, table: str, sql: str, params):
        seq = SEQ_FOR_TABLE[table]
        if "RETURNING id" in sql:
            self.pending[table] += 1
            return FakeCursor([(self._nextval(seq),)], rowcount=1)

        if "UNNEST" in sql:
            n = len(params[0])
        elif " VALUES " in sql:
            n = sql.count("),(") + 1
        else:
            n = 0

        if f"nextval('{seq}')" in sql:
            for _ in range(n):
                self._nextval(seq)
        self.pending[table] += n
        return FakeCursor(rowcount=n)


@pytest.fixture
def fake_conn():
    return FakeConnection(user_ids=range(1, 101), product_ids=range(1, 51))


@pytest.fixture
def warm_cache(fake_conn):
    from pgingestbench.key_cache import KeyCache

    cache = KeyCache(seed=7, emit=lambda _msg: None)
    cache.warm(fake_conn)
    return cache


@pytest.fixture
def pg_dsn():
    dsn = os.environ.get("PG_TEST_DSN")
    if not dsn:
        pytest.skip("PG_TEST_DSN not set")
    return dsn
