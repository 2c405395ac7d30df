from datetime import datetime, timedelta
from decimal import Decimal

from pgingestbench.generator import PRICE_CENTS_MAX, PRICE_CENTS_MIN, RecordGenerator


def test_users_are_well_formed():
    batch = RecordGenerator(seed=1).users(50)
    assert len(batch) == 50
    assert all(u for u in batch.usernames)
    assert all("@" in e for e in batch.emails)
    assert len(list(batch.rows())) == 50


def test_products_have_two_decimal_nonnegative_prices():
    batch = RecordGenerator(seed=2).products(500)
    assert len(batch) == 500
    for price in batch.prices:
        assert isinstance(price, Decimal)
        assert price >= 0
        assert price.as_tuple().exponent == -2
        assert Decimal(PRICE_CENTS_MIN) / 100 <= price <= Decimal(PRICE_CENTS_MAX) / 100
    assert all(len(name.split()) >= 3 for name in batch.names)


def test_orders_within_window_and_user_range():
    now = datetime(2026, 6, 1, 12, 0, 0)
    batch = RecordGenerator(seed=3).orders(1000, user_max=20, days=365, now=now)
    assert len(batch) == 1000
    assert all(1 <= u <= 20 for u in batch.user_ids)
    assert all(now - timedelta(days=365) < d <= now for d in batch.order_dates)
    assert all(isinstance(d, datetime) for d in batch.order_dates)


def test_order_items_ranges():
    batch = RecordGenerator(seed=4).order_items(3000, order_max=100, product_max=7, max_quantity=5)
    assert len(batch) == 3000
    assert min(batch.order_ids) >= 1 and max(batch.order_ids) <= 100
    assert set(batch.product_ids) <= set(range(1, 8))
    assert set(batch.quantities) == {1, 2, 3, 4, 5}


def test_quantities_default_range_is_one_to_nine():
    qty = RecordGenerator(seed=5).quantities(5000)
    assert set(qty) == set(range(1, 10))


def test_non_positive_counts_give_empty_batches():
    gen = RecordGenerator(seed=6)
    assert len(gen.users(0)) == 0
    assert len(gen.products(-3)) == 0
    assert len(gen.orders(-1, user_max=10)) == 0
    assert len(gen.order_items(0, order_max=1, product_max=1)) == 0
    assert gen.quantities(-5) == []


def test_seeded_generators_repeat():
    now = datetime(2026, 1, 1)
    a, b = RecordGenerator(seed=42), RecordGenerator(seed=42)
    assert a.users(5).emails == b.users(5).emails
    assert a.products(5).prices == b.products(5).prices
    assert a.orders(5, 10, now=now).order_dates == b.orders(5, 10, now=now).order_dates
