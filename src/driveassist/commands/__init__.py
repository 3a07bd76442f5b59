"""Command system for the drive assistant.

This module implements:
- Command parsing from message text
- A registry of command grammars and handlers
- Confirmation-gated deletes
- Command routing and response formatting
"""

from .command_parser import CommandParser, validate_path
from .confirmations import ConfirmationTracker, PendingConfirmation, RedisConfirmationTracker
from .formatter import ResponseFormatter
from .registry import CommandRegistry, CommandSpec, Flow, default_registry
from .router import CommandRouter
from .types import ActionHandlerSet, ActionResult, AuditEntry, Command, CommandType, FileEntry

__all__ = [
    "ActionHandlerSet",
    "ActionResult",
    "AuditEntry",
    "Command",
    "CommandParser",
    "CommandRegistry",
    "CommandRouter",
    "CommandSpec",
    "CommandType",
    "ConfirmationTracker",
    "FileEntry",
    "Flow",
    "PendingConfirmation",
    "RedisConfirmationTracker",
    "ResponseFormatter",
    "default_registry",
    "validate_path",
]
