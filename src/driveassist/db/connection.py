"""DuckDB connection for the audit store."""

import logging
import os
from pathlib import Path

import duckdb

from .migrations import run_migrations

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def open_database(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open the audit database.

    Falls back to ``DUCKDB_PATH``, then ``data/driveassist.db``. Parent
    directories of file databases are created on first use.
    """
    db_path = db_path or os.getenv("DUCKDB_PATH") or "data/driveassist.db"
    if db_path != IN_MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


def init_db(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open the audit database and bring its schema up to date."""
    conn = open_database(db_path)
    applied = run_migrations(conn)
    if applied:
        logger.info("Audit schema migrated: %s", ", ".join(applied))
    return conn
