"""Wire the real collaborators into a message service."""

import logging

import duckdb

from driveassist.audit import AuditLog
from driveassist.commands import (
    ActionHandlerSet,
    CommandParser,
    CommandRouter,
    ConfirmationTracker,
    RedisConfirmationTracker,
    ResponseFormatter,
)
from driveassist.config import Settings
from driveassist.db import init_db
from driveassist.drive import DriveClient, SheetsAuditLog, TokenProvider, get_token_provider
from driveassist.errors import ConfigurationError
from driveassist.redis_client import get_redis_client
from driveassist.service import MessageService
from driveassist.summarizer import Summarizer

logger = logging.getLogger(__name__)


def _summary_unavailable(path: str) -> str:
    raise ConfigurationError("Summaries are disabled: OPENAI_API_KEY is not set")


def build_handler_set(
    settings: Settings,
    db_conn: duckdb.DuckDBPyConnection,
    token_provider: TokenProvider | None = None,
) -> ActionHandlerSet:
    """Build handlers backed by Google Drive, OpenAI and the audit log."""
    token_provider = token_provider or get_token_provider()
    drive = DriveClient(token_provider, timeout=settings.http_timeout_seconds)

    try:
        summarize = Summarizer(
            drive,
            model=settings.openai_model,
            max_bytes=settings.summary_max_bytes,
            max_files=settings.summary_max_files,
            timeout=settings.handler_timeout_seconds,
        ).summarize
    except ConfigurationError as e:
        logger.warning("%s", e)
        summarize = _summary_unavailable

    sheet = None
    if settings.audit_sheet_id:
        sheet = SheetsAuditLog(
            token_provider, settings.audit_sheet_id, timeout=settings.http_timeout_seconds
        )

    return ActionHandlerSet(
        list_files=drive.list_files,
        delete_file=drive.delete_file,
        move_file=drive.move_file,
        summarize_files=summarize,
        append_audit_entry=AuditLog(db_conn, sheet).append,
    )


def build_confirmations(settings: Settings) -> ConfirmationTracker | RedisConfirmationTracker:
    if settings.confirmation_backend == "redis":
        return RedisConfirmationTracker(
            get_redis_client(), window_seconds=settings.confirmation_window_seconds
        )
    return ConfirmationTracker(window_seconds=settings.confirmation_window_seconds)


def build_message_service(
    settings: Settings,
    handlers: ActionHandlerSet | None = None,
    db_conn: duckdb.DuckDBPyConnection | None = None,
) -> MessageService:
    """Assemble parser, router and formatter for the given settings."""
    if handlers is None:
        handlers = build_handler_set(settings, db_conn or init_db(settings.duckdb_path))

    router = CommandRouter(
        handlers,
        build_confirmations(settings),
        handler_timeout=settings.handler_timeout_seconds,
    )
    return MessageService(
        CommandParser(router.registry),
        router,
        ResponseFormatter(settings.max_message_length),
    )
