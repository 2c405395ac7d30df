"""
Process-level wiring: background bootstrap, cache warm-up, and a connection
per benchmark invocation.
"""

from __future__ import annotations

import sys
import threading
import traceback
from typing import Callable

import psycopg

from .bootstrap import DataBootstrap, Phase
from .config import LoadConfig
from .errors import CacheUnavailableError
from .generator import RecordGenerator
from .key_cache import KeyCache
from .marker import FileMarker, ReadySignal
from .schema import ensure_schema
from .strategies import BenchmarkResult, get_strategy


class BenchmarkRuntime:
    def __init__(
        self,
        dsn: str = "",
        config: LoadConfig | None = None,
        marker=None,
        connect: Callable | None = None,
        emit: Callable[[str], None] = print,
    ):
        self.dsn = dsn
        self.config = config or LoadConfig()
        self.marker = marker if marker is not None else FileMarker(self.config.marker_path)
        self.connect = connect or self._connect
        self.emit = emit

        self.signal = ReadySignal()
        self.cache = KeyCache(seed=self.config.seed, emit=emit)
        self.generator = RecordGenerator(self.config.seed)
        self.bootstrap = DataBootstrap(
            self.connect, self.marker, self.config, signal=self.signal, emit=emit
        )

        self.warmup_error: BaseException | None = None
        # set once the cache is warm or can no longer become warm
        self._settled = threading.Event()

    def _connect(self):
        return psycopg.connect(self.dsn)

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def start(self, generate_data: bool = True) -> None:
        conn = self.connect()
        try:
            ensure_schema(conn)
        finally:
            conn.close()

        if generate_data:
            self._spawn("bootstrap", self._bootstrap)
        elif self.marker.exists():
            self.signal.set()
        else:
            self.warmup_error = CacheUnavailableError(
                "data generation disabled and no completion marker; "
                "benchmarks stay unavailable"
            )
            self.emit(f"[runtime] {self.warmup_error}")
            self._settled.set()
            return

        self._spawn("cache-warmup", self._warm_when_ready)

    def _spawn(self, name: str, target: Callable) -> None:
        t = threading.Thread(target=target, name=name, daemon=True)
        t.start()

    def _bootstrap(self) -> None:
        if self.bootstrap.run() is Phase.FAILED:
            self._settled.set()

    def _warm_when_ready(self) -> None:
        self.signal.wait()
        try:
            conn = self.connect()
            try:
                self.cache.warm(conn)
            finally:
                conn.close()
        except Exception as e:
            self.warmup_error = e
            print(f"[runtime] ERROR: cache warm-up failed: {e}", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
        finally:
            self._settled.set()

    def wait_ready(self, timeout: float | None = None) -> bool:
        """
        Block until the key cache is warm. Returns False on timeout, or as soon
        as it is clear the cache will never warm (failed bootstrap, failed
        warm-up, or generation disabled with no completion marker).
        """
        self._settled.wait(timeout)
        return self.cache.is_ready

    # -----------------------------
    # Benchmarks
    # -----------------------------
    def run(self, slug: str, orders: int, items_per_order: int) -> BenchmarkResult:
        strategy = get_strategy(slug, self.generator)
        if not self.cache.is_ready:
            raise CacheUnavailableError(
                "key cache is not warmed up yet; the dataset may still be generating"
            )

        conn = self.connect()
        try:
            result = strategy.run(conn, self.cache, orders, items_per_order)
        finally:
            conn.close()

        self.emit(
            f"[bench] {result.strategy}: records={result.total_records:,} "
            f"time={result.execution_time_ms} ms"
        )
        return result
