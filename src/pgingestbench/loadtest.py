"""
Concurrent load scenario over the four strategies.

Each strategy gets its own scenario, run one after another so timings do not
overlap: `workers` threads each make `iterations` passes over the request
sizes, and per-request times are summarised.
"""

from __future__ import annotations

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .strategies import STRATEGIES

# (orders, items per order)
DEFAULT_SIZES = ((10, 5), (50, 5), (100, 5))


@dataclass(frozen=True)
class ScenarioSummary:
    strategy: str
    requests: int
    errors: int
    records: int
    mean_ms: float
    p95_ms: float
    max_ms: float
    wall_seconds: float

    @property
    def error_rate(self) -> float:
        return self.errors / self.requests if self.requests else 0.0


def run_scenario(runtime, slug: str, workers: int = 5, iterations: int = 1, sizes=DEFAULT_SIZES) -> ScenarioSummary:
    def worker() -> tuple[list[int], int, int]:
        times: list[int] = []
        records = 0
        errors = 0
        for _ in range(iterations):
            for orders, items in sizes:
                try:
                    result = runtime.run(slug, orders, items)
                except Exception as e:
                    errors += 1
                    print(f"[loadtest] {slug} ({orders}x{items}) failed: {e}", file=sys.stderr)
                    continue
                times.append(result.execution_time_ms)
                records += result.total_records
        return times, records, errors

    started = time.time()
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix=f"load-{slug}") as pool:
        futures = [pool.submit(worker) for _ in range(max(1, workers))]
        outcomes = [f.result() for f in futures]
    wall = time.time() - started

    times = np.array([t for o in outcomes for t in o[0]], dtype=np.float64)
    errors = sum(o[2] for o in outcomes)
    return ScenarioSummary(
        strategy=STRATEGIES[slug].name,
        requests=int(times.size) + errors,
        errors=errors,
        records=sum(o[1] for o in outcomes),
        mean_ms=float(times.mean()) if times.size else 0.0,
        p95_ms=float(np.percentile(times, 95)) if times.size else 0.0,
        max_ms=float(times.max()) if times.size else 0.0,
        wall_seconds=wall,
    )


def run_all(runtime, workers: int = 5, iterations: int = 1, sizes=DEFAULT_SIZES) -> list[ScenarioSummary]:
    summaries = []
    for slug in STRATEGIES:
        print(f"[loadtest] {slug}: workers={workers} iterations={iterations}")
        summaries.append(run_scenario(runtime, slug, workers, iterations, sizes))
    return summaries


def format_summary(summaries: list[ScenarioSummary]) -> str:
    header = f"{'strategy':<24}{'requests':>10}{'errors':>8}{'records':>10}{'mean ms':>10}{'p95 ms':>10}{'max ms':>10}"
    lines = [header, "-" * len(header)]
    for s in summaries:
        lines.append(
            f"{s.strategy:<24}{s.requests:>10}{s.errors:>8}{s.records:>10}"
            f"{s.mean_ms:>10.1f}{s.p95_ms:>10.1f}{s.max_ms:>10.1f}"
        )
    return "\n".join(lines)
