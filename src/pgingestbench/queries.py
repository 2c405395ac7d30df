"""
Read side: per-order summaries for one user, looked up by email.

Two ways of producing the same rows:

  n-plus-one  one query for the orders, one per order for its items, one per
              distinct product for its price (lazy-load access pattern)
  joined      a single JOIN + GROUP BY

Both return orders newest first.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .repository import find_product

USER_ORDERS_SQL = """
SELECT o.id, o.order_date
FROM orders o
JOIN users u ON u.id = o.user_id
WHERE u.email = %s
ORDER BY o.order_date DESC, o.id
"""

ORDER_ITEMS_SQL = "SELECT id, quantity, product_id FROM order_items WHERE order_id = %s"

USER_ORDER_SUMMARIES_SQL = """
SELECT o.id, o.order_date, count(oi.id), COALESCE(sum(p.price * oi.quantity), 0)
FROM orders o
JOIN users u ON u.id = o.user_id
LEFT JOIN order_items oi ON oi.order_id = o.id
LEFT JOIN products p ON p.id = oi.product_id
WHERE u.email = %s
GROUP BY o.id, o.order_date
ORDER BY o.order_date DESC, o.id
"""


@dataclass(frozen=True)
class OrderSummary:
    id: int
    order_date: datetime
    number_of_items: int
    total_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderDate": self.order_date.isoformat(),
            "numberOfItems": self.number_of_items,
            "totalAmount": float(self.total_amount),
        }


@dataclass(frozen=True)
class SelectResult:
    mode: str
    summaries: list[OrderSummary]
    queries: int
    execution_time_ms: int

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "orders": len(self.summaries),
            "queries": self.queries,
            "executionTimeMs": self.execution_time_ms,
        }


def user_orders_n_plus_one(conn, email: str) -> tuple[list[OrderSummary], int]:
    """Returns the summaries and the number of statements it took."""
    orders = conn.execute(USER_ORDERS_SQL, (email,)).fetchall()
    queries = 1
    prices: dict[int, Decimal] = {}

    summaries = []
    for order_id, order_date in orders:
        items = conn.execute(ORDER_ITEMS_SQL, (order_id,)).fetchall()
        queries += 1
        total = Decimal(0)
        for _item_id, quantity, product_id in items:
            if product_id not in prices:
                prices[product_id] = find_product(conn, product_id).price
                queries += 1
            total += prices[product_id] * quantity
        summaries.append(OrderSummary(order_id, order_date, len(items), total))
    return summaries, queries


def user_orders_joined(conn, email: str) -> tuple[list[OrderSummary], int]:
    rows = conn.execute(USER_ORDER_SUMMARIES_SQL, (email,)).fetchall()
    return [OrderSummary(oid, odate, int(n), Decimal(total)) for oid, odate, n, total in rows], 1


SELECT_MODES = {
    "n-plus-one": user_orders_n_plus_one,
    "joined": user_orders_joined,
}


def user_orders(conn, email: str, mode: str = "joined") -> SelectResult:
    try:
        fetch = SELECT_MODES[mode]
    except KeyError:
        raise KeyError(f"unknown select mode: {mode!r}") from None

    t0 = time.perf_counter()
    try:
        summaries, queries = fetch(conn, email)
        # read-only; end the implicit transaction
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    elapsed_ms = int((time.perf_counter() - t0) * 1000)
    return SelectResult(mode, summaries, queries, elapsed_ms)
