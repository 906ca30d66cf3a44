"""Materialized-path trees over a flat SQL table."""

__version__ = "0.1.0"
