"""
Pydantic schemas for agent API.

Defines request/response models for the inbound-message and operator APIs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..domain.entities import Channel


# =============================================================================
# Constants
# =============================================================================

MAX_MESSAGE_LENGTH = 10000


# =============================================================================
# Inbound Message Schemas
# =============================================================================


class InboundMessageRequest(BaseModel):
    """An inbound customer message from the ingestion layer."""

    text: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    channel: Channel
    channel_identity: str = Field(..., min_length=1, max_length=320)
    session_id: Optional[str] = Field(None, max_length=400)
    customer_name: Optional[str] = Field(None, max_length=200)
    subject: Optional[str] = Field(None, max_length=998)

    class Config:
        json_schema_extra = {
            "example": {
                "text": "Can I get an update on invoice INV-Q100-ABCDE?",
                "channel": "chat",
                "channel_identity": "+27821234567",
                "session_id": "ML-27821234567",
                "customer_name": "Jane",
            }
        }


class AttachmentResponse(BaseModel):
    """A document delivered alongside the reply."""

    id: str
    url: str
    caption: str


class InboundMessageResponse(BaseModel):
    """Result of processing an inbound message.

    ``status`` is ``replied`` when the agent answered, or ``human_controlled``
    when an operator owns the session and no reply was produced.
    """

    session_id: str
    status: str
    text: Optional[str] = None
    attachments: list[AttachmentResponse] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)
    payload: Optional[dict[str, Any]] = None


# =============================================================================
# Operator Schemas
# =============================================================================


class HumanControlRequest(BaseModel):
    """Operator request to take over or hand back a session."""

    is_human_controlled: bool


class HumanControlResponse(BaseModel):
    """Human-control state of a session."""

    session_id: str
    is_human_controlled: bool
    updated_at: Optional[datetime] = None


class OperatorReplyRequest(BaseModel):
    """A reply a human operator sent to the customer."""

    text: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class OperatorReplyResponse(BaseModel):
    session_id: str
    recorded: bool = True
