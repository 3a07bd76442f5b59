"""FastAPI backend for the drive assistant.

Inbound messages arrive either as JSON (``/v1/messages``) or as Twilio
webhooks (``/v1/webhooks/twilio``); each produces a single text reply.
"""

import logging
import os
from datetime import UTC, datetime
from xml.sax.saxutils import escape

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from driveassist import __version__
from driveassist.config import load_settings
from driveassist.handlers import build_message_service
from driveassist.logging_utils import (
    clear_request_id,
    configure_logging,
    log_info,
    set_request_id,
)
from driveassist.models import MessageRequest, MessageResponse, StatusResponse
from driveassist.service import MessageService
from driveassist.webhooks import verify_twilio_signature

configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(
    title="Drive Assistant API",
    version=__version__,
    description="Chat commands for a cloud file store",
)

# Message service (initialized lazily)
_message_service: MessageService | None = None


def get_message_service() -> MessageService:
    """Get or initialize the message service from settings."""
    global _message_service
    if _message_service is None:
        _message_service = build_message_service(load_settings())
    return _message_service


def set_message_service(service: MessageService | None) -> None:
    """Replace the message service (used by tests and embedding apps)."""
    global _message_service
    _message_service = service


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/v1/status", response_model=StatusResponse)
def get_status():
    """Get service status. Does not expose configuration values."""
    service = get_message_service()
    confirmations = service.router.confirmations
    pending = getattr(confirmations, "pending_count", lambda: None)()
    backend = "memory" if getattr(confirmations, "redis", None) is None else "redis"
    return StatusResponse(
        status="ok",
        version=app.version,
        timestamp=datetime.now(UTC),
        confirmation_backend=backend,
        pending_confirmations=pending,
    )


@app.post("/v1/messages", response_model=MessageResponse)
def submit_message(request: MessageRequest) -> MessageResponse:
    """Handle one inbound message and return the reply text."""
    reply = get_message_service().handle_message(request.sender_id, request.text)
    return MessageResponse(reply=reply.reply, command=reply.command, success=reply.success)


def _signature_url(request: Request) -> str:
    # Behind a proxy the public URL differs from the one the app sees
    configured = os.environ.get("TWILIO_WEBHOOK_URL")
    return configured or str(request.url)


def _signature_required() -> str | None:
    """Return the auth token if Twilio signatures must be checked."""
    if os.environ.get("TWILIO_VALIDATE_SIGNATURE", "true").lower() == "false":
        return None
    return os.environ.get("TWILIO_AUTH_TOKEN") or None


@app.post("/v1/webhooks/twilio")
async def twilio_webhook(request: Request) -> Response:
    """Handle a Twilio messaging webhook and reply with TwiML."""
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    auth_token = _signature_required()
    if auth_token is not None and not verify_twilio_signature(
        _signature_url(request),
        params,
        request.headers.get("X-Twilio-Signature"),
        auth_token,
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    sender_id = params.get("From", "")
    if not sender_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing From")

    log_info(logger, "Twilio message received", message_sid=params.get("MessageSid", ""))
    reply = await run_in_threadpool(
        get_message_service().handle_message, sender_id, params.get("Body", "")
    )
    twiml = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Response><Message>{escape(reply.reply)}</Message></Response>"
    )
    return Response(content=twiml, media_type="application/xml")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPExceptions and return the error schema."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "message": str(exc.detail)},
    )
