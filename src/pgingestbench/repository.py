"""
Row-at-a-time persistence used by the per-record and single-transaction
strategies: find by id, save one row. Saves never commit; the caller owns
the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class User:
    id: int
    username: str
    email: str


@dataclass
class Product:
    id: int
    name: str
    price: Decimal


@dataclass
class OrderItem:
    product: Product
    quantity: int
    order_id: int | None = None
    id: int | None = None


@dataclass
class Order:
    user: User
    order_date: datetime
    items: list[OrderItem] = field(default_factory=list)
    id: int | None = None


def find_user(conn, user_id: int) -> User:
    row = conn.execute(
        "SELECT id, username, email FROM users WHERE id = %s", (user_id,)
    ).fetchone()
    if row is None:
        raise LookupError(f"user {user_id} not found")
    return User(*row)


def find_product(conn, product_id: int) -> Product:
    row = conn.execute(
        "SELECT id, name, price FROM products WHERE id = %s", (product_id,)
    ).fetchone()
    if row is None:
        raise LookupError(f"product {product_id} not found")
    return Product(*row)


def save_order(conn, order: Order) -> Order:
    """Insert the order, then its items against the id the insert returned."""
    order.id = conn.execute(
        "INSERT INTO orders (id, order_date, user_id) "
        "VALUES (nextval('order_sequence'), %s, %s) RETURNING id",
        (order.order_date, order.user.id),
    ).fetchone()[0]
    for item in order.items:
        item.order_id = order.id
        save_order_item(conn, item)
    return order


def save_order_item(conn, item: OrderItem) -> OrderItem:
    if item.order_id is None:
        raise ValueError("order item has no order id; save the order first")
    item.id = conn.execute(
        "INSERT INTO order_items (id, quantity, order_id, product_id) "
        "VALUES (nextval('order_item_sequence'), %s, %s, %s) RETURNING id",
        (item.quantity, item.order_id, item.product.id),
    ).fetchone()[0]
    return item
