"""Discogs Workbench - read-only DuckDB query workbench for demo dataset packs."""

__version__ = "0.1.0"
