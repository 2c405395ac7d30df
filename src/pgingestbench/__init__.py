"""Bulk insert benchmarking on PostgreSQL."""

__version__ = "0.1.0"
