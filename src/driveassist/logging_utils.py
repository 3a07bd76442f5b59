"""Logging helpers: secret redaction, request ids and key=value context.

Messages from these helpers look like::

    Command executed | request_id=4f1c... | command=LIST | sender_id=whatsapp:+1555

Field values pass through ``redact_secrets`` so credentials that end up in
exception text never reach the log.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

_request_id: ContextVar[str | None] = ContextVar("driveassist_request_id", default=None)

SECRET_PATTERNS = [
    (re.compile(r"sk-[A-Za-z0-9_\-]{8,}"), "sk-***REDACTED***"),  # OpenAI API keys
    (re.compile(r"ya29\.[A-Za-z0-9_\-.]+"), "ya29.***REDACTED***"),  # Google access tokens
    (re.compile(r"1//[A-Za-z0-9_\-]{10,}"), "1//***REDACTED***"),  # Google refresh tokens
    (re.compile(r"\bAC[0-9a-fA-F]{32}\b"), "AC***REDACTED***"),  # Twilio account SIDs
]

AUTH_HEADER_PATTERN = re.compile(
    r"(Authorization[:\s]+)(Bearer\s+|Basic\s+)?([^\s,;]+)",
    re.IGNORECASE,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def redact_secrets(text: Any) -> str:
    """Mask API keys, OAuth tokens, Twilio SIDs and Authorization values."""
    if text is None:
        return ""
    text = str(text)

    # Header values go first; a bearer token would otherwise be half-masked
    text = AUTH_HEADER_PATTERN.sub(r"\1\2***REDACTED***", text)
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id (a fresh uuid4 if none is given) to the current context."""
    request_id = request_id or str(uuid.uuid4())
    _request_id.set(request_id)
    return request_id


def get_request_id() -> str | None:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set(None)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install a stream handler on the root logger unless one is configured."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **fields: Any,
) -> None:
    """Emit ``message`` followed by the request id and redacted ``key=value`` fields.

    Args:
        logger: Target logger
        level: Logging level
        message: Event description
        **fields: Context such as sender_id or command
    """
    if not logger.isEnabledFor(level):
        return

    parts = [message]
    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")
    parts.extend(f"{key}={redact_secrets(value)}" for key, value in fields.items())
    logger.log(level, " | ".join(parts))


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.INFO, message, **fields)


def log_warning(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.WARNING, message, **fields)


def log_error(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.ERROR, message, **fields)
