#!/usr/bin/env python3
"""
pgingestbench

Fill an empty PostgreSQL database with users/products/orders/order items, then
compare four ways of inserting new orders:

  multiple-transactions  one commit per order
  single-transaction     one commit, row-at-a-time statements
  batch-values           one literal multi-row INSERT per table
  batch-unnest           one INSERT ... SELECT FROM UNNEST(arrays) per table

The base dataset is generated once; a marker file
(data-generated.delete-me-to-regenerate) records that it is complete. Delete
it, or pass --force, to regenerate.

psql-compatible flags:
- -h host, -p port, -U user, -d dbname
(argparse help is remapped to --help / -?)

Usage:
  pgingestbench -h localhost -U postgres -d bench bootstrap
  pgingestbench -h localhost -U postgres -d bench bench --strategy all --orders 100 --items-per-order 5
  pgingestbench -h localhost -U postgres -d bench loadtest --workers 5
  pgingestbench -h localhost -U postgres -d bench user-orders --email someone@example.com
"""

from __future__ import annotations

import argparse
import json
import os
import shlex
import sys

import psycopg
from psycopg.conninfo import make_conninfo

from .bootstrap import DataBootstrap, Phase
from .config import NUM_ORDERS, NUM_PRODUCTS, NUM_USERS, ITEMS_PER_ORDER, LoadConfig
from .errors import PgIngestBenchError
from .loadtest import format_summary, run_all
from .marker import FLAG_FILE_NAME, FileMarker
from .runtime import BenchmarkRuntime
from .schema import (
    create_indexes,
    create_schema_and_tables,
    dangling_references,
    ensure_schema,
    table_counts,
)
from .queries import SELECT_MODES, user_orders
from .strategies import STRATEGIES


# -----------------------------
# Connection (psql-compatible)
# -----------------------------
# dest, psql short flag, long option, help
PSQL_FLAGS = (
    ("host", "-h", "--host", "database server host or socket directory"),
    ("port", "-p", "--port", "database server port"),
    ("user", "-U", "--user", "database user name"),
    ("dbname", "-d", "--dbname", "database name"),
)
# passed to libpq but kept out of the psql command line
LIBPQ_EXTRA = ("password", "sslmode")


def build_libpq_dsn(args) -> str:
    if args.dsn:
        return args.dsn
    params = {}
    for key in [f[0] for f in PSQL_FLAGS] + list(LIBPQ_EXTRA):
        value = getattr(args, key)
        if value:
            params[key] = value
    return make_conninfo(**params)


def psql_equivalent_cmd(args) -> str:
    cmd = ["psql"]
    for dest, flag, _long, _help in PSQL_FLAGS:
        value = getattr(args, dest)
        if value:
            cmd += [flag, str(value)]

    env = []
    if args.password:
        env.append("PGPASSWORD='***'")
    if args.sslmode:
        env.append(f"PGSSLMODE={shlex.quote(args.sslmode)}")
    return " ".join(env + [shlex.join(cmd)])


def add_connection_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--dsn",
        default=os.environ.get("PG_DSN"),
        help="libpq DSN. Overrides -h/-p/-U/-d.",
    )
    for dest, flag, long_opt, text in PSQL_FLAGS:
        ap.add_argument(
            flag,
            long_opt,
            dest=dest,
            type=int if dest == "port" else str,
            default=None,
            help=f"{text} (psql compatible).",
        )
    ap.add_argument("--password", default=None, help="database password (or use PGPASSWORD env / .pgpass).")
    ap.add_argument("--sslmode", default=None, help="sslmode (require, verify-full, etc.).")


def load_config(args) -> LoadConfig:
    return LoadConfig(
        users=args.users,
        products=args.products,
        orders=args.orders,
        items_factor=args.items_factor,
        seed=args.seed,
        marker_path=args.marker,
        progress_interval=args.progress_interval,
        async_commit=not args.sync_commit,
    )


# -----------------------------
# Commands
# -----------------------------
def cmd_init_schema(args, dsn: str) -> int:
    with psycopg.connect(dsn) as conn:
        print("[setup] creating tables and sequences...")
        create_schema_and_tables(conn, logged=not args.unlogged, with_fk=not args.no_fk)
    FileMarker(args.marker).remove()
    return 0


def cmd_create_indexes(args, dsn: str) -> int:
    with psycopg.connect(dsn) as conn:
        print("[post] creating indexes + analyze...")
        create_indexes(conn)
    return 0


def cmd_bootstrap(args, dsn: str) -> int:
    cfg = load_config(args)
    marker = FileMarker(cfg.marker_path)
    if args.force:
        marker.remove()

    with psycopg.connect(dsn) as conn:
        ensure_schema(conn)

    phase = DataBootstrap(lambda: psycopg.connect(dsn), marker, cfg).run()
    return 1 if phase is Phase.FAILED else 0


def _started_runtime(args, dsn: str) -> BenchmarkRuntime | None:
    runtime = BenchmarkRuntime(dsn, load_config(args))
    runtime.start(generate_data=args.generate_data)
    print("[runtime] waiting for key cache...")
    if not runtime.wait_ready(args.wait):
        print("[runtime] key cache unavailable; giving up", file=sys.stderr)
        return None
    return runtime


def cmd_bench(args, dsn: str) -> int:
    runtime = _started_runtime(args, dsn)
    if runtime is None:
        return 1

    slugs = list(STRATEGIES) if args.strategy == "all" else [args.strategy]
    results = []
    for slug in slugs:
        results.append(runtime.run(slug, args.orders_count, args.items_per_order).to_dict())
    print(json.dumps(results if len(results) > 1 else results[0], indent=2))
    return 0


def cmd_loadtest(args, dsn: str) -> int:
    runtime = _started_runtime(args, dsn)
    if runtime is None:
        return 1

    summaries = run_all(runtime, workers=args.workers, iterations=args.iterations)
    print(format_summary(summaries))
    return 1 if any(s.error_rate >= args.max_error_rate for s in summaries if s.errors) else 0


def cmd_user_orders(args, dsn: str) -> int:
    modes = list(SELECT_MODES) if args.mode == "both" else [args.mode]
    results = []
    with psycopg.connect(dsn) as conn:
        for mode in modes:
            result = user_orders(conn, args.email, mode)
            print(
                f"[select] {mode}: orders={len(result.summaries):,} "
                f"queries={result.queries:,} time={result.execution_time_ms} ms"
            )
            results.append(result)

    print(
        json.dumps(
            {
                "orders": [s.to_dict() for s in results[-1].summaries],
                "timings": [r.to_dict() for r in results],
            },
            indent=2,
        )
    )
    return 0


def cmd_verify(args, dsn: str) -> int:
    with psycopg.connect(dsn) as conn:
        for table, count in table_counts(conn).items():
            print(f"[verify] {table}: {count:,} rows")
        dangling = dangling_references(conn)
    bad = 0
    for ref, count in dangling.items():
        print(f"[verify] dangling {ref}: {count:,}")
        bad += count
    print(f"[verify] completion marker present: {FileMarker(args.marker).exists()}")
    return 1 if bad else 0


# -----------------------------
# Main
# -----------------------------
def build_parser() -> argparse.ArgumentParser:
    # argparse default -h conflicts with psql's -h(host).
    ap = argparse.ArgumentParser(
        prog="pgingestbench",
        description="Generate a referentially consistent dataset and benchmark bulk insert strategies.",
        add_help=False,
    )
    ap.add_argument(
        "--help", "-?", action="help", help="show this help message and exit"
    )

    add_connection_arguments(ap)
    ap.add_argument(
        "--print-psql",
        action="store_true",
        help="Print equivalent psql command and exit.",
    )
    ap.add_argument(
        "--marker",
        default=FLAG_FILE_NAME,
        help="Path of the completion marker file.",
    )

    # Dataset shape, shared by every command that may (re)generate data
    data = argparse.ArgumentParser(add_help=False)
    data.add_argument("--num-users", dest="users", type=int, default=NUM_USERS, help="Number of users to generate.")
    data.add_argument("--num-products", dest="products", type=int, default=NUM_PRODUCTS, help="Number of products to generate.")
    data.add_argument("--num-orders", dest="orders", type=int, default=NUM_ORDERS, help="Number of orders to generate.")
    data.add_argument(
        "--items-factor",
        type=int,
        default=ITEMS_PER_ORDER,
        help="Order items generated per order (total = orders * factor).",
    )
    data.add_argument("--seed", type=int, default=None, help="RNG seed.")
    data.add_argument(
        "--progress-interval",
        type=float,
        default=3.0,
        help="Seconds between progress announcements.",
    )
    data.add_argument(
        "--sync-commit",
        action="store_true",
        help="Keep synchronous_commit on during the load (slower, fully durable).",
    )

    # Runtime options for benchmark commands
    rt = argparse.ArgumentParser(add_help=False)
    rt.add_argument(
        "--no-generate",
        dest="generate_data",
        action="store_false",
        help="Do not generate the dataset; require an existing completion marker.",
    )
    rt.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for the key cache (default: until ready).",
    )

    sub = ap.add_subparsers(dest="command", metavar="command")

    p = sub.add_parser("init-schema", help="(Re)create tables and sequences. Destroys data.")
    p.add_argument("--unlogged", action="store_true", help="Create UNLOGGED tables (faster, not crash safe).")
    p.add_argument("--no-fk", action="store_true", help="Skip foreign keys.")
    p.set_defaults(func=cmd_init_schema)

    p = sub.add_parser("create-indexes", help="Create foreign key indexes + ANALYZE.")
    p.set_defaults(func=cmd_create_indexes)

    p = sub.add_parser("bootstrap", parents=[data], help="Generate the base dataset once.")
    p.add_argument("--force", action="store_true", help="Remove the completion marker first.")
    p.set_defaults(func=cmd_bootstrap)

    p = sub.add_parser("bench", parents=[data, rt], help="Run insert strategies once.")
    p.add_argument(
        "--strategy",
        choices=[*STRATEGIES, "all"],
        default="all",
        help="Strategy to run.",
    )
    p.add_argument(
        "--orders",
        dest="orders_count",
        type=int,
        default=100,
        help="Orders to insert per strategy.",
    )
    p.add_argument("--items-per-order", type=int, default=5, help="Items per inserted order.")
    p.set_defaults(func=cmd_bench)

    p = sub.add_parser("loadtest", parents=[data, rt], help="Concurrent load scenario over all strategies.")
    p.add_argument("--workers", type=int, default=5, help="Concurrent workers per strategy.")
    p.add_argument("--iterations", type=int, default=1, help="Passes over the request sizes per worker.")
    p.add_argument(
        "--max-error-rate",
        type=float,
        default=0.1,
        help="Exit non-zero if any strategy reaches this error rate.",
    )
    p.set_defaults(func=cmd_loadtest)

    p = sub.add_parser("user-orders", help="Per-order summaries for one user, N+1 vs single JOIN.")
    p.add_argument("--email", required=True, help="Email of the user whose orders are listed.")
    p.add_argument(
        "--mode",
        choices=[*SELECT_MODES, "both"],
        default="both",
        help="Query shape to run (both: run each and compare timings).",
    )
    p.set_defaults(func=cmd_user_orders)

    p = sub.add_parser("verify", help="Row counts and dangling reference scan.")
    p.set_defaults(func=cmd_verify)

    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.print_psql:
        print(psql_equivalent_cmd(args))
        return 0

    if not getattr(args, "command", None):
        ap.print_usage(sys.stderr)
        return 2

    dsn = build_libpq_dsn(args)
    try:
        return args.func(args, dsn)
    except (PgIngestBenchError, psycopg.Error) as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
