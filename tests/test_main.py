import json
from datetime import datetime

import psycopg
import pytest

from conftest import FakeConnection
from pgingestbench.config import NUM_ORDERS
from pgingestbench.main import build_libpq_dsn, build_parser, load_config, main, psql_equivalent_cmd


def parse(*argv):
    return build_parser().parse_args(list(argv))


def test_psql_style_flags_build_a_dsn():
    args = parse("-h", "db", "-p", "5433", "-U", "bench", "-d", "shop", "--dsn", "", "verify")
    assert build_libpq_dsn(args) == "host=db port=5433 user=bench dbname=shop"
    assert psql_equivalent_cmd(args) == "psql -h db -p 5433 -U bench -d shop"


def test_explicit_dsn_wins():
    args = parse("--dsn", "postgresql://x@y/z", "-h", "ignored", "verify")
    assert build_libpq_dsn(args) == "postgresql://x@y/z"


def test_password_is_masked_in_psql_command():
    args = parse("--dsn", "", "-h", "db", "--password", "secret", "verify")
    assert "secret" not in psql_equivalent_cmd(args)
    assert "password=secret" in build_libpq_dsn(args)


def test_bench_arguments():
    args = parse("bench", "--strategy", "batch-values", "--orders", "10", "--items-per-order", "3")
    assert args.strategy == "batch-values"
    assert args.orders_count == 10
    assert args.items_per_order == 3
    assert args.generate_data is True
    assert load_config(args).orders == NUM_ORDERS


def test_bootstrap_arguments_map_to_config(tmp_path):
    marker = tmp_path / "flag"
    args = parse("--marker", str(marker), "bootstrap", "--num-users", "5", "--num-orders", "7", "--seed", "9", "--sync-commit")
    cfg = load_config(args)
    assert (cfg.users, cfg.orders, cfg.seed) == (5, 7, 9)
    assert cfg.order_items == 21
    assert cfg.marker_path == str(marker)
    assert cfg.async_commit is False


def test_unknown_strategy_rejected():
    with pytest.raises(SystemExit):
        parse("bench", "--strategy", "copy")


def test_print_psql_exits_cleanly(capsys):
    assert main(["-h", "localhost", "-U", "postgres", "--print-psql"]) == 0
    assert capsys.readouterr().out.strip() == "psql -h localhost -U postgres"


def test_missing_command_is_a_usage_error():
    assert main(["--dsn", ""]) == 2


def test_user_orders_arguments():
    args = parse("user-orders", "--email", "a@example.com")
    assert args.email == "a@example.com"
    assert args.mode == "both"
    with pytest.raises(SystemExit):
        parse("user-orders", "--email", "a@example.com", "--mode", "eager")


def test_user_orders_compares_both_query_shapes(monkeypatch, capsys):
    conn = FakeConnection(user_ids=[1], product_ids=[4])
    conn.orders_by_email["a@example.com"] = [(9, datetime(2024, 1, 2, 3, 4, 5))]
    conn.items_by_order[9] = [(1, 3, 4)]
    monkeypatch.setattr(psycopg, "connect", lambda dsn: conn)

    assert main(["--dsn", "", "user-orders", "--email", "a@example.com"]) == 0

    out = capsys.readouterr().out
    assert "[select] n-plus-one: orders=1 queries=3" in out
    assert "[select] joined: orders=1 queries=1" in out
    payload = json.loads(out[out.index("{"):])
    assert payload["orders"] == [
        {"id": 9, "orderDate": "2024-01-02T03:04:05", "numberOfItems": 1, "totalAmount": 29.97}
    ]
    assert [t["mode"] for t in payload["timings"]] == ["n-plus-one", "joined"]
    assert conn.closed
