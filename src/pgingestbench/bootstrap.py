"""
One-shot regeneration of the base dataset.

    CHECK -> SKIPPED                       (marker present)
    CHECK -> CLEANUP -> GENERATE_USERS -> GENERATE_PRODUCTS
          -> GENERATE_ORDERS -> GENERATE_ORDER_ITEMS -> DONE
    any failure                            -> FAILED (no marker)

Each phase commits on its own. A failure part-way leaves the earlier phases
committed; the next run starts again from CLEANUP, which truncates first.

Orders and items reference users/products/orders by plain integer range
(1..count). That is only valid because CLEANUP restarts every sequence at 1
and each phase inserts exactly `count` rows.
"""

from __future__ import annotations

import enum
import sys
import time
import traceback
from typing import Callable

from .config import LoadConfig
from .generator import RecordGenerator
from .marker import ReadySignal
from .progress import ProgressReporter
from .schema import SEQUENCE_START, SEQUENCES, TABLES

INSERT_USERS_SQL = """
INSERT INTO users (id, username, email)
SELECT nextval('user_sequence'), u.username, u.email
FROM UNNEST(%s::text[], %s::text[]) AS u(username, email)
"""

INSERT_PRODUCTS_SQL = """
INSERT INTO products (id, name, price)
SELECT nextval('product_sequence'), p.name, p.price
FROM UNNEST(%s::text[], %s::numeric[]) AS p(name, price)
"""

INSERT_ORDERS_SQL = """
INSERT INTO orders (id, order_date, user_id)
SELECT nextval('order_sequence'), o.order_date, o.user_id
FROM UNNEST(%s::timestamp[], %s::bigint[]) AS o(order_date, user_id)
"""

INSERT_ORDER_ITEMS_SQL = """
INSERT INTO order_items (id, order_id, product_id, quantity)
SELECT nextval('order_item_sequence'), oi.order_id, oi.product_id, oi.quantity
FROM UNNEST(%s::bigint[], %s::bigint[], %s::integer[]) AS oi(order_id, product_id, quantity)
"""


class Phase(enum.Enum):
    CHECK = "check"
    CLEANUP = "cleanup"
    GENERATE_USERS = "generate_users"
    GENERATE_PRODUCTS = "generate_products"
    GENERATE_ORDERS = "generate_orders"
    GENERATE_ORDER_ITEMS = "generate_order_items"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (Phase.DONE, Phase.SKIPPED, Phase.FAILED)


class DataBootstrap:
    def __init__(
        self,
        connect: Callable,
        marker,
        config: LoadConfig | None = None,
        signal: ReadySignal | None = None,
        generator: RecordGenerator | None = None,
        reporter: ProgressReporter | None = None,
        emit: Callable[[str], None] = print,
    ):
        self.connect = connect
        self.marker = marker
        self.config = config or LoadConfig()
        self.signal = signal
        self.generator = generator or RecordGenerator(self.config.seed)
        self.reporter = reporter or ProgressReporter(
            interval=self.config.progress_interval, emit=emit
        )
        self.emit = emit
        self.phase = Phase.CHECK
        self.error: BaseException | None = None

    def run(self) -> Phase:
        # one run per instance
        if self.phase.terminal:
            return self.phase

        if self.marker.exists():
            self.emit("[bootstrap] data has already been generated; skipping regeneration")
            self.phase = Phase.SKIPPED
            self._publish()
            return self.phase

        started = time.time()
        self.emit("[bootstrap] starting data generation...")
        try:
            conn = self.connect()
            try:
                self._load(conn)
            finally:
                self.reporter.stop()
                conn.close()

            self.marker.create()
            self.phase = Phase.DONE
            self.emit(f"[bootstrap] completion marker created: {self.marker!r}")
            self.emit(f"[bootstrap] data generation completed in {time.time() - started:.0f} seconds")
            self._publish()
        except Exception as e:
            self.error = e
            print(f"[bootstrap] ERROR during {self.phase.value}: {e}", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
            self.phase = Phase.FAILED

        return self.phase

    def _publish(self) -> None:
        if self.signal is not None:
            self.signal.set()

    def _load(self, conn) -> None:
        cfg = self.config
        if cfg.async_commit:
            conn.execute("SET synchronous_commit = off")
            conn.commit()
            self.emit("[bootstrap] disabled synchronous commit for bulk loading")

        self.phase = Phase.CLEANUP
        self.cleanup(conn)

        self.phase = Phase.GENERATE_USERS
        self.generate_users(conn)

        self.phase = Phase.GENERATE_PRODUCTS
        self.generate_products(conn)

        self.phase = Phase.GENERATE_ORDERS
        self.generate_orders(conn)

        self.phase = Phase.GENERATE_ORDER_ITEMS
        self.generate_order_items(conn)

    # -----------------------------
    # Phases
    # -----------------------------
    def cleanup(self, conn) -> None:
        self.emit("[bootstrap] cleaning up database...")
        try:
            for table in TABLES:
                conn.execute(f"TRUNCATE TABLE {table} CASCADE")
            for seq in SEQUENCES:
                conn.execute(f"ALTER SEQUENCE {seq} RESTART WITH {SEQUENCE_START}")
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        self.emit("[bootstrap] database cleanup completed")

    def generate_users(self, conn) -> None:
        n = self.config.users
        self.emit(f"[bootstrap] generating {n:,} users")
        with self.reporter.track("Preparing users data", n):
            batch = self.generator.users(n)
        with self.reporter.track("Inserting users", n):
            inserted = self._insert(conn, INSERT_USERS_SQL, (batch.usernames, batch.emails))
        self.emit(f"[bootstrap] inserted {inserted:,} users")

    def generate_products(self, conn) -> None:
        n = self.config.products
        self.emit(f"[bootstrap] generating {n:,} products")
        with self.reporter.track("Preparing products data", n):
            batch = self.generator.products(n)
        with self.reporter.track("Inserting products", n):
            inserted = self._insert(conn, INSERT_PRODUCTS_SQL, (batch.names, batch.prices))
        self.emit(f"[bootstrap] inserted {inserted:,} products")

    def generate_orders(self, conn) -> None:
        cfg = self.config
        n = cfg.orders
        self.emit(f"[bootstrap] generating {n:,} orders")
        with self.reporter.track("Preparing orders data", n):
            batch = self.generator.orders(n, user_max=cfg.users, days=cfg.order_days)
        with self.reporter.track("Inserting orders", n):
            inserted = self._insert(conn, INSERT_ORDERS_SQL, (batch.order_dates, batch.user_ids))
        self.emit(f"[bootstrap] inserted {inserted:,} orders")

    def generate_order_items(self, conn) -> None:
        cfg = self.config
        n = cfg.order_items
        self.emit(f"[bootstrap] generating {n:,} order items")
        with self.reporter.track("Preparing order items data", n):
            batch = self.generator.order_items(
                n,
                order_max=cfg.orders,
                product_max=cfg.products,
                max_quantity=cfg.max_quantity,
            )
        with self.reporter.track("Inserting order items", n):
            inserted = self._insert(
                conn,
                INSERT_ORDER_ITEMS_SQL,
                (batch.order_ids, batch.product_ids, batch.quantities),
            )
        self.emit(f"[bootstrap] inserted {inserted:,} order items")

    def _insert(self, conn, sql: str, columns: tuple) -> int:
        try:
            cur = conn.execute(sql, columns)
            inserted = cur.rowcount
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        return inserted
