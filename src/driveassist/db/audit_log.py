"""Audit log persistence module."""

import uuid
from dataclasses import dataclass
from datetime import datetime

import duckdb

from driveassist.commands.types import AuditEntry


@dataclass
class AuditRecord:
    """A stored audit log row."""

    id: str
    created_at: datetime
    sender_id: str
    command: str
    target: str | None
    outcome: str
    detail: str | None


def write_audit_entry(conn: duckdb.DuckDBPyConnection, entry: AuditEntry) -> AuditRecord:
    """Persist an audit entry.

    Args:
        conn: Database connection.
        entry: Entry produced by the router.

    Returns:
        The stored record.
    """
    record = AuditRecord(
        id=str(uuid.uuid4()),
        created_at=entry.timestamp,
        sender_id=entry.sender_id,
        command=entry.command,
        target=entry.target,
        outcome=entry.outcome,
        detail=entry.detail,
    )
    conn.execute(
        """
        INSERT INTO audit_log (id, created_at, sender_id, command, target, outcome, detail)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            record.id,
            record.created_at,
            record.sender_id,
            record.command,
            record.target,
            record.outcome,
            record.detail,
        ],
    )
    return record


def get_audit_entries(
    conn: duckdb.DuckDBPyConnection,
    sender_id: str | None = None,
    limit: int = 50,
) -> list[AuditRecord]:
    """Query audit entries, newest first.

    Args:
        conn: Database connection.
        sender_id: Only return entries for this sender.
        limit: Maximum number of rows.
    """
    query = """
        SELECT id, created_at, sender_id, command, target, outcome, detail
        FROM audit_log
    """
    params: list = []
    if sender_id is not None:
        query += " WHERE sender_id = ?"
        params.append(sender_id)
    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)

    rows = conn.execute(query, params).fetchall()
    return [AuditRecord(*row) for row in rows]
