"""
Four ways to insert the same orders and order items.

Every strategy takes (orders, items_per_order), draws user/product ids from a
warm KeyCache and reports the elapsed wall-clock time:

  multiple-transactions  one commit per order, one statement per row
  single-transaction     one commit, one statement per row
  batch-values           one commit, one literal multi-row INSERT per table
  batch-unnest           one commit, one array-bound INSERT per table

Order ids are always explicit. The row-at-a-time strategies read them back
with RETURNING; the batch strategies reserve them up front from
order_sequence and reference them directly, so concurrent invocations can
never pick up each other's "last" order id.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from .generator import RecordGenerator
from .key_cache import KeyCache
from .repository import (
    Order,
    OrderItem,
    find_product,
    find_user,
    save_order,
    save_order_item,
)

ITEM_QUANTITY_MAX = 9

RESERVE_ORDER_IDS_SQL = "SELECT nextval('order_sequence') FROM generate_series(1, %s)"

UNNEST_ORDERS_SQL = """
INSERT INTO orders (id, order_date, user_id)
SELECT o.id, o.order_date, o.user_id
FROM UNNEST(%s::bigint[], %s::timestamp[], %s::bigint[]) AS o(id, order_date, user_id)
"""

UNNEST_ITEMS_SQL = """
INSERT INTO order_items (id, quantity, order_id, product_id)
SELECT nextval('order_item_sequence'), oi.quantity, oi.order_id, oi.product_id
FROM UNNEST(%s::integer[], %s::bigint[], %s::bigint[]) AS oi(quantity, order_id, product_id)
"""


@dataclass(frozen=True)
class BenchmarkResult:
    strategy: str
    total_records: int
    execution_time_ms: int

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "totalRecords": self.total_records,
            "executionTimeMs": self.execution_time_ms,
        }


class InsertStrategy:
    slug = ""
    name = ""

    def __init__(self, generator: RecordGenerator | None = None):
        self.generator = generator or RecordGenerator()

    def run(self, conn, cache: KeyCache, orders: int, items_per_order: int) -> BenchmarkResult:
        n = max(0, orders)
        m = max(0, items_per_order)
        cache.require_ready()

        start = time.perf_counter()
        try:
            if n:
                self.insert(conn, cache, n, m)
        except Exception:
            conn.rollback()
            raise
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        return BenchmarkResult(self.name, n * (1 + m), elapsed_ms)

    def insert(self, conn, cache: KeyCache, n: int, m: int) -> None:
        raise NotImplementedError

    def _reserve_order_ids(self, conn, n: int) -> list[int]:
        rows = conn.execute(RESERVE_ORDER_IDS_SQL, (n,)).fetchall()
        return [r[0] for r in rows]


class MultipleTransactions(InsertStrategy):
    slug = "multiple-transactions"
    name = "Multiple Transactions"

    def insert(self, conn, cache, n, m):
        for _ in range(n):
            user = find_user(conn, cache.random_user_id())
            order = Order(user=user, order_date=datetime.now())
            for quantity in self.generator.quantities(m, high=ITEM_QUANTITY_MAX):
                product = find_product(conn, cache.random_product_id())
                order.items.append(OrderItem(product=product, quantity=quantity))

            save_order(conn, order)
            conn.commit()


class SingleTransaction(InsertStrategy):
    slug = "single-transaction"
    name = "Single Transaction"

    def insert(self, conn, cache, n, m):
        for _ in range(n):
            user = find_user(conn, cache.random_user_id())
            order = save_order(conn, Order(user=user, order_date=datetime.now()))

            for quantity in self.generator.quantities(m, high=ITEM_QUANTITY_MAX):
                product = find_product(conn, cache.random_product_id())
                save_order_item(
                    conn, OrderItem(product=product, quantity=quantity, order_id=order.id)
                )
        conn.commit()


class BatchValues(InsertStrategy):
    slug = "batch-values"
    name = "Batch VALUES"

    def insert(self, conn, cache, n, m):
        orders_sql, items_sql = self.build_statements(conn, cache, n, m)
        conn.execute(orders_sql)
        if items_sql:
            conn.execute(items_sql)
        conn.commit()

    def build_statements(self, conn, cache, n, m) -> tuple[str, str | None]:
        """
        Concatenate literal tuples into one INSERT per table.

        Statement size grows linearly with n * m; nothing here bounds it.
        """
        order_ids = self._reserve_order_ids(conn, n)
        user_ids = cache.sample_user_ids(n).tolist()
        product_ids = cache.sample_product_ids(n * m).tolist()
        quantities = self.generator.quantities(n * m, high=ITEM_QUANTITY_MAX)

        order_values = []
        item_values = []
        for i, order_id in enumerate(order_ids):
            order_values.append(f"({order_id}, '{datetime.now().isoformat(sep=' ')}', {user_ids[i]})")
            for j in range(i * m, (i + 1) * m):
                item_values.append(
                    f"(nextval('order_item_sequence'), {quantities[j]}, {order_id}, {product_ids[j]})"
                )

        orders_sql = "INSERT INTO orders (id, order_date, user_id) VALUES " + ",".join(order_values)
        items_sql = None
        if item_values:
            items_sql = (
                "INSERT INTO order_items (id, quantity, order_id, product_id) VALUES "
                + ",".join(item_values)
            )
        return orders_sql, items_sql


class BatchUnnest(InsertStrategy):
    slug = "batch-unnest"
    name = "Batch UNNEST"

    def insert(self, conn, cache, n, m):
        order_ids = self._reserve_order_ids(conn, n)
        now = datetime.now()

        conn.execute(
            UNNEST_ORDERS_SQL,
            (order_ids, [now] * n, cache.sample_user_ids(n).tolist()),
        )
        if m:
            conn.execute(
                UNNEST_ITEMS_SQL,
                (
                    self.generator.quantities(n * m, high=ITEM_QUANTITY_MAX),
                    np.repeat(np.asarray(order_ids, dtype=np.int64), m).tolist(),
                    cache.sample_product_ids(n * m).tolist(),
                ),
            )
        conn.commit()


STRATEGIES: dict[str, type[InsertStrategy]] = {
    cls.slug: cls
    for cls in (MultipleTransactions, SingleTransaction, BatchValues, BatchUnnest)
}


def get_strategy(slug: str, generator: RecordGenerator | None = None) -> InsertStrategy:
    try:
        cls = STRATEGIES[slug]
    except KeyError:
        raise KeyError(
            f"unknown strategy {slug!r} (choose from: {', '.join(STRATEGIES)})"
        ) from None
    return cls(generator)
