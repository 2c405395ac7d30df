from __future__ import annotations


class PgIngestBenchError(Exception):
    """Base class for errors raised by pgingestbench itself."""


class CacheUnavailableError(PgIngestBenchError):
    """The key cache was read before warm-up completed."""


class EmptyKeySetError(PgIngestBenchError):
    """Warm-up found no users or no products; the dataset was never bootstrapped."""
