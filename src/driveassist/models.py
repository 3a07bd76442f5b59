"""Pydantic models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    """Inbound message."""

    sender_id: str = Field(..., min_length=1, max_length=128, examples=["whatsapp:+15550001111"])
    text: str = Field(..., max_length=2000, examples=["LIST /Reports"])


class MessageResponse(BaseModel):
    """Reply to an inbound message."""

    reply: str
    command: str
    success: bool


class StatusResponse(BaseModel):
    """Service status."""

    status: str
    version: str
    timestamp: datetime
    confirmation_backend: str
    pending_confirmations: int | None = None
