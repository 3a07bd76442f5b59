"""Audit log collaborator: DuckDB, optionally mirrored to a Google Sheet."""

import logging
import threading

import duckdb

from driveassist.commands.types import AuditEntry
from driveassist.db.audit_log import write_audit_entry
from driveassist.drive.sheets import SheetsAuditLog

logger = logging.getLogger(__name__)


class AuditLog:
    """Append audit entries; safe to call from handler worker threads."""

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        sheet: SheetsAuditLog | None = None,
    ) -> None:
        self.conn = conn
        self.sheet = sheet
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        """Store the entry, then mirror it to the sheet if one is configured.

        Raises:
            CollaboratorError: If the sheet mirror fails (the DB row is kept)
        """
        with self._lock:
            write_audit_entry(self.conn, entry)
        if self.sheet is not None:
            self.sheet.append(entry)
