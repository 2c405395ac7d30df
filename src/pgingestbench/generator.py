"""
Synthetic record generation.

Values are produced column-oriented (one list per column) because every bulk
statement downstream binds whole columns as arrays. Numeric columns come from
a NumPy Generator; free text comes from Faker.

Nothing here touches the database, and nothing here can fail: n <= 0 simply
yields an empty batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator

import numpy as np
from faker import Faker

PRICE_CENTS_MIN = 100
PRICE_CENTS_MAX = 100_000

ADJECTIVES = (
    "Small", "Ergonomic", "Rustic", "Intelligent", "Gorgeous", "Incredible",
    "Practical", "Sleek", "Awesome", "Enormous", "Mediocre", "Synergistic",
    "Heavy Duty", "Lightweight", "Durable",
)
MATERIALS = (
    "Steel", "Wooden", "Concrete", "Plastic", "Cotton", "Granite", "Rubber",
    "Leather", "Silk", "Wool", "Linen", "Marble", "Iron", "Bronze", "Copper",
    "Aluminum", "Paper",
)
NOUNS = (
    "Chair", "Car", "Computer", "Gloves", "Pants", "Shirt", "Table", "Shoes",
    "Hat", "Plate", "Knife", "Bottle", "Coat", "Lamp", "Keyboard", "Bag",
    "Bench", "Clock", "Watch", "Wallet",
)


@dataclass
class UserBatch:
    usernames: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.usernames)

    def rows(self) -> Iterator[tuple]:
        return zip(self.usernames, self.emails)


@dataclass
class ProductBatch:
    names: list[str] = field(default_factory=list)
    prices: list[Decimal] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.names)

    def rows(self) -> Iterator[tuple]:
        return zip(self.names, self.prices)


@dataclass
class OrderBatch:
    order_dates: list[datetime] = field(default_factory=list)
    user_ids: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.user_ids)

    def rows(self) -> Iterator[tuple]:
        return zip(self.order_dates, self.user_ids)


@dataclass
class OrderItemBatch:
    order_ids: list[int] = field(default_factory=list)
    product_ids: list[int] = field(default_factory=list)
    quantities: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.order_ids)

    def rows(self) -> Iterator[tuple]:
        return zip(self.order_ids, self.product_ids, self.quantities)


class RecordGenerator:
    """
    Field values for users, products, orders and order items.

    A seeded generator is reproducible: the same seed and the same call
    sequence give the same values (timestamps aside, which are relative to
    `now` unless it is passed explicitly).
    """

    def __init__(self, seed: int | None = None):
        self.rng = np.random.default_rng(seed)
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)

    def users(self, n: int) -> UserBatch:
        batch = UserBatch()
        for _ in range(max(0, n)):
            batch.usernames.append(self.fake.user_name())
            batch.emails.append(self.fake.email())
        return batch

    def products(self, n: int) -> ProductBatch:
        n = max(0, n)
        adj = self.rng.integers(0, len(ADJECTIVES), size=n)
        mat = self.rng.integers(0, len(MATERIALS), size=n)
        noun = self.rng.integers(0, len(NOUNS), size=n)
        cents = self.rng.integers(PRICE_CENTS_MIN, PRICE_CENTS_MAX + 1, size=n)

        names = [
            f"{ADJECTIVES[a]} {MATERIALS[m]} {NOUNS[k]}"
            for a, m, k in zip(adj.tolist(), mat.tolist(), noun.tolist())
        ]
        prices = [Decimal(c).scaleb(-2) for c in cents.tolist()]
        return ProductBatch(names=names, prices=prices)

    def order_dates(self, n: int, days: int = 365, now: datetime | None = None) -> list[datetime]:
        """Naive timestamps uniformly spread over the last `days` days."""
        n = max(0, n)
        if now is None:
            now = datetime.now()
        span_seconds = max(1, days * 86_400)
        offsets = self.rng.integers(0, span_seconds, size=n, dtype=np.int64)
        base = np.datetime64(now.replace(tzinfo=None), "us")
        return (base - offsets.astype("timedelta64[s]")).tolist()

    def orders(
        self, n: int, user_max: int, days: int = 365, now: datetime | None = None
    ) -> OrderBatch:
        n = max(0, n)
        dates = self.order_dates(n, days=days, now=now)
        user_ids = self.rng.integers(1, max(1, user_max) + 1, size=n, dtype=np.int64)
        return OrderBatch(order_dates=dates, user_ids=user_ids.tolist())

    def order_items(
        self, n: int, order_max: int, product_max: int, max_quantity: int = 5
    ) -> OrderItemBatch:
        n = max(0, n)
        order_ids = self.rng.integers(1, max(1, order_max) + 1, size=n, dtype=np.int64)
        product_ids = self.rng.integers(1, max(1, product_max) + 1, size=n, dtype=np.int64)
        return OrderItemBatch(
            order_ids=order_ids.tolist(),
            product_ids=product_ids.tolist(),
            quantities=self.quantities(n, high=max_quantity),
        )

    def quantities(self, n: int, low: int = 1, high: int = 9) -> list[int]:
        """Positive integer quantities in [low, high]."""
        low = max(1, low)
        high = max(low, high)
        return self.rng.integers(low, high + 1, size=max(0, n), dtype=np.int32).tolist()
