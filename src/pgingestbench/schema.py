from __future__ import annotations

SEQUENCE_START = 1

# child tables first
TABLES = ("order_items", "orders", "products", "users")
SEQUENCES = ("order_item_sequence", "order_sequence", "product_sequence", "user_sequence")

# -----------------------------
# Schema / DDL
# -----------------------------
DDL_TEMPLATE = """
-- Drop in dependency order
DROP TABLE IF EXISTS order_items;
DROP TABLE IF EXISTS orders;
DROP TABLE IF EXISTS products;
DROP TABLE IF EXISTS users;

DROP SEQUENCE IF EXISTS order_item_sequence;
DROP SEQUENCE IF EXISTS order_sequence;
DROP SEQUENCE IF EXISTS product_sequence;
DROP SEQUENCE IF EXISTS user_sequence;

{sequences}

{create_table} users (
  id        bigint PRIMARY KEY,
  username  text NOT NULL,
  email     text NOT NULL
);

{create_table} products (
  id     bigint PRIMARY KEY,
  name   text NOT NULL,
  price  numeric(10, 2) NOT NULL CHECK (price >= 0)
);

{create_table} orders (
  id          bigint PRIMARY KEY,
  user_id     bigint NOT NULL,
  order_date  timestamp NOT NULL
);

{create_table} order_items (
  id          bigint PRIMARY KEY,
  order_id    bigint NOT NULL,
  product_id  bigint NOT NULL,
  quantity    int NOT NULL CHECK (quantity > 0)
);

{fk}
"""

FK_SQL = """
ALTER TABLE orders
  ADD CONSTRAINT orders_user_fk
  FOREIGN KEY (user_id) REFERENCES users(id);

ALTER TABLE order_items
  ADD CONSTRAINT items_order_fk
  FOREIGN KEY (order_id) REFERENCES orders(id);

ALTER TABLE order_items
  ADD CONSTRAINT items_product_fk
  FOREIGN KEY (product_id) REFERENCES products(id);
"""

ENSURE_SQL = f"""
CREATE SEQUENCE IF NOT EXISTS user_sequence START WITH {SEQUENCE_START};
CREATE SEQUENCE IF NOT EXISTS product_sequence START WITH {SEQUENCE_START};
CREATE SEQUENCE IF NOT EXISTS order_sequence START WITH {SEQUENCE_START};
CREATE SEQUENCE IF NOT EXISTS order_item_sequence START WITH {SEQUENCE_START};

CREATE TABLE IF NOT EXISTS users (
  id        bigint PRIMARY KEY,
  username  text NOT NULL,
  email     text NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
  id     bigint PRIMARY KEY,
  name   text NOT NULL,
  price  numeric(10, 2) NOT NULL CHECK (price >= 0)
);

CREATE TABLE IF NOT EXISTS orders (
  id          bigint PRIMARY KEY,
  user_id     bigint NOT NULL REFERENCES users(id),
  order_date  timestamp NOT NULL
);

CREATE TABLE IF NOT EXISTS order_items (
  id          bigint PRIMARY KEY,
  order_id    bigint NOT NULL REFERENCES orders(id),
  product_id  bigint NOT NULL REFERENCES products(id),
  quantity    int NOT NULL CHECK (quantity > 0)
);
"""


def create_schema_and_tables(conn, logged: bool = True, with_fk: bool = True) -> None:
    create_table = "CREATE TABLE" if logged else "CREATE UNLOGGED TABLE"
    sequences = "\n".join(
        f"CREATE SEQUENCE {seq} START WITH {SEQUENCE_START};" for seq in reversed(SEQUENCES)
    )
    ddl = DDL_TEMPLATE.format(
        create_table=create_table,
        sequences=sequences,
        fk=FK_SQL if with_fk else "",
    )
    conn.execute(ddl)
    conn.commit()


def ensure_schema(conn) -> None:
    """Create whatever is missing; never drops anything."""
    conn.execute(ENSURE_SQL)
    conn.commit()


def create_indexes(conn) -> None:
    conn.execute("CREATE INDEX IF NOT EXISTS orders_user_id_idx ON orders (user_id);")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS items_order_id_idx ON order_items (order_id);"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS items_product_id_idx ON order_items (product_id);"
    )
    for table in reversed(TABLES):
        conn.execute(f"ANALYZE {table};")
    conn.commit()


# -----------------------------
# Verification
# -----------------------------
def table_counts(conn) -> dict[str, int]:
    counts = {}
    for table in reversed(TABLES):
        counts[table] = int(conn.execute(f"SELECT count(*) FROM {table}").fetchone()[0])
    conn.commit()
    return counts


def dangling_references(conn) -> dict[str, int]:
    """Rows whose foreign reference does not resolve (all zero when consistent)."""
    checks = {
        "orders.user_id": (
            "SELECT count(*) FROM orders o "
            "WHERE NOT EXISTS (SELECT 1 FROM users u WHERE u.id = o.user_id)"
        ),
        "order_items.order_id": (
            "SELECT count(*) FROM order_items i "
            "WHERE NOT EXISTS (SELECT 1 FROM orders o WHERE o.id = i.order_id)"
        ),
        "order_items.product_id": (
            "SELECT count(*) FROM order_items i "
            "WHERE NOT EXISTS (SELECT 1 FROM products p WHERE p.id = i.product_id)"
        ),
    }
    result = {}
    for name, sql in checks.items():
        result[name] = int(conn.execute(sql).fetchone()[0])
    conn.commit()
    return result


def next_sequence_values(conn) -> dict[str, int]:
    """
    The id each sequence would hand out next, without consuming it.

    Reads last_value/is_called from the sequence relation itself.
    """
    values = {}
    for seq in SEQUENCES:
        last_value, is_called = conn.execute(
            f"SELECT last_value, is_called FROM {seq}"
        ).fetchone()
        values[seq] = int(last_value) + 1 if is_called else int(last_value)
    conn.commit()
    return values
