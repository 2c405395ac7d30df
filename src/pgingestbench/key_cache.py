"""
Write-once snapshot of existing user and product ids.

Benchmarks sample foreign references from here instead of querying the store
for every row. The snapshot is taken once per process and never refreshed,
so rows inserted afterwards are invisible to it until restart.
"""

from __future__ import annotations

import threading

import numpy as np

from .errors import CacheUnavailableError, EmptyKeySetError


class KeyCache:
    def __init__(self, seed: int | None = None, emit=print):
        self.emit = emit
        self._rng = np.random.default_rng(seed)
        self._user_ids: np.ndarray | None = None
        self._product_ids: np.ndarray | None = None
        self._ready = threading.Event()
        self._warm_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def require_ready(self) -> None:
        if not self._ready.is_set():
            raise CacheUnavailableError("key cache is not warmed up yet")

    def warm(self, conn) -> None:
        """
        Full scan of users.id and products.id.

        Raises EmptyKeySetError if either table is empty. A second call after
        a successful warm-up does nothing.
        """
        with self._warm_lock:
            if self._ready.is_set():
                return

            user_ids = _fetch_ids(conn, "SELECT id FROM users")
            if user_ids.size == 0:
                raise EmptyKeySetError("No existing users found in the database")

            product_ids = _fetch_ids(conn, "SELECT id FROM products")
            if product_ids.size == 0:
                raise EmptyKeySetError("No existing products found in the database")

            self._user_ids = user_ids
            self._product_ids = product_ids
            # publish after both arrays are in place
            self._ready.set()

        self.emit(
            f"[cache] warmed: users={user_ids.size:,} products={product_ids.size:,}"
        )

    @property
    def user_count(self) -> int:
        return int(self._users().size)

    @property
    def product_count(self) -> int:
        return int(self._products().size)

    def random_user_id(self) -> int:
        ids = self._users()
        return int(ids[self._rng.integers(ids.size)])

    def random_product_id(self) -> int:
        ids = self._products()
        return int(ids[self._rng.integers(ids.size)])

    def sample_user_ids(self, n: int) -> np.ndarray:
        ids = self._users()
        return ids[self._rng.integers(0, ids.size, size=max(0, n))]

    def sample_product_ids(self, n: int) -> np.ndarray:
        ids = self._products()
        return ids[self._rng.integers(0, ids.size, size=max(0, n))]

    def _users(self) -> np.ndarray:
        self.require_ready()
        return self._user_ids

    def _products(self) -> np.ndarray:
        self.require_ready()
        return self._product_ids


def _fetch_ids(conn, query: str) -> np.ndarray:
    rows = conn.execute(query).fetchall()
    conn.commit()
    return np.fromiter((r[0] for r in rows), dtype=np.int64, count=len(rows))
