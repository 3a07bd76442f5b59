"""Data types shared by the parser, router and formatter."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class CommandType(str, Enum):
    """Kinds of command a sender can issue."""

    LIST = "LIST"
    DELETE = "DELETE"
    CONFIRM_DELETE = "CONFIRM_DELETE"
    MOVE = "MOVE"
    SUMMARY = "SUMMARY"
    HELP = "HELP"
    INVALID = "INVALID"


@dataclass
class Command:
    """A parsed inbound message."""

    command_type: CommandType
    sender_id: str
    raw_text: str
    path: str | None = None
    destination_path: str | None = None
    validation_error: str | None = None
    verb: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.command_type != CommandType.INVALID

    @property
    def args(self) -> tuple[str, ...]:
        """Positional arguments in grammar order."""
        return tuple(a for a in (self.path, self.destination_path) if a is not None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.command_type.value,
            "sender_id": self.sender_id,
            "path": self.path,
            "destination_path": self.destination_path,
            "is_valid": self.is_valid,
            "validation_error": self.validation_error,
        }


@dataclass(frozen=True)
class FileEntry:
    """One entry of a folder listing."""

    name: str
    size: int | None = None
    is_folder: bool = False


@dataclass(frozen=True)
class AuditEntry:
    """Record of a handled command, appended to the audit log."""

    sender_id: str
    command: str
    outcome: str
    target: str | None = None
    detail: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_row(self) -> list[str]:
        """Flatten for spreadsheet rows."""
        return [
            self.timestamp.isoformat(),
            self.sender_id,
            self.command,
            self.target or "",
            self.outcome,
            self.detail or "",
        ]


@dataclass
class ActionResult:
    """Outcome of routing a command.

    ``items`` is set for listings so the formatter can truncate per item.
    """

    success: bool
    message: str
    audit_entry: AuditEntry | None = None
    items: list[FileEntry] | None = None


@dataclass
class ActionHandlerSet:
    """External collaborators the router dispatches to.

    Each callable may block; the router bounds every call with a timeout.
    """

    list_files: Callable[[str], list[FileEntry]]
    delete_file: Callable[[str], None]
    move_file: Callable[[str, str], None]
    summarize_files: Callable[[str], str]
    append_audit_entry: Callable[[AuditEntry], None]
    extra: dict[str, Callable[..., Any]] = field(default_factory=dict)

    def get(self, name: str) -> Callable[..., Any]:
        """Look up a handler by name, including registered extras.

        Raises:
            KeyError: If no handler has that name.
        """
        if name in self.extra:
            return self.extra[name]
        handler = getattr(self, name, None)
        if handler is None or not callable(handler) or name.startswith("_") or name == "get":
            raise KeyError(name)
        return handler
