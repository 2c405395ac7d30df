from __future__ import annotations

from dataclasses import dataclass

from .marker import FLAG_FILE_NAME
from .progress import DEFAULT_INTERVAL_SEC

NUM_USERS = 100_000
NUM_PRODUCTS = 100_000
NUM_ORDERS = 1_000_000
ITEMS_PER_ORDER = 3


@dataclass(frozen=True)
class LoadConfig:
    users: int = NUM_USERS
    products: int = NUM_PRODUCTS
    orders: int = NUM_ORDERS
    items_factor: int = ITEMS_PER_ORDER
    order_days: int = 365
    max_quantity: int = 5
    seed: int | None = None
    marker_path: str = FLAG_FILE_NAME
    progress_interval: float = DEFAULT_INTERVAL_SEC
    async_commit: bool = True

    @property
    def order_items(self) -> int:
        return self.orders * self.items_factor
