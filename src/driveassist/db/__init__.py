"""DuckDB persistence for the audit log."""

from .connection import init_db, open_database

__all__ = ["init_db", "open_database"]
