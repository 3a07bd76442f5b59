"""Database migrations shipped with the package."""

import logging
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "sql"


def run_migrations(
    conn: duckdb.DuckDBPyConnection, migrations_dir: Path = MIGRATIONS_DIR
) -> list[str]:
    """Run all pending database migrations.

    Args:
        conn: DuckDB connection.
        migrations_dir: Directory of ``*.sql`` files, applied in name order.

    Returns:
        Versions applied by this call.
    """
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    applied = {row[0] for row in conn.execute("SELECT version FROM schema_migrations").fetchall()}

    newly_applied = []
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        version = migration_file.stem  # e.g., "001_audit_log"
        if version in applied:
            continue

        conn.execute(migration_file.read_text())
        conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", [version])
        logger.info("Applied migration: %s", version)
        newly_applied.append(version)

    return newly_applied
