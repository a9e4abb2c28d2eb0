"""
Channel Adapter base.

A channel adapter supplies the channel's system prompt, extracts the
customer's identity, and renders the agent's final response into the payload
the transport sends. Rendering is a pure presentation transform: it never
changes what the orchestrator decided to say or attach.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.entities import AgentResponse, Attachment, Channel, ChannelContext
from .prompts import build_system_prompt


@dataclass
class OutboundMessage:
    """One transport call (a text message or a document message)."""

    kind: str  # "text" or "document"
    recipient: str
    text: Optional[str] = None
    document_url: Optional[str] = None
    caption: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "recipient": self.recipient,
            "text": self.text,
            "document_url": self.document_url,
            "caption": self.caption,
        }


@dataclass
class ChannelPayload:
    """Rendered response ready for the channel transport.

    Chat payloads carry ``messages`` (one transport call each). Email payloads
    carry a single envelope: subject, HTML and plain-text bodies, with
    attachments listed separately.
    """

    channel: Channel
    recipient: str
    messages: list[OutboundMessage] = field(default_factory=list)
    subject: Optional[str] = None
    html_body: Optional[str] = None
    plain_text_body: Optional[str] = None
    attachments: list[Attachment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "recipient": self.recipient,
            "messages": [m.to_dict() for m in self.messages],
            "subject": self.subject,
            "html_body": self.html_body,
            "plain_text_body": self.plain_text_body,
            "attachments": [
                {"url": a.url, "caption": a.caption, "id": a.id} for a in self.attachments
            ],
        }


class ChannelAdapter(ABC):
    """Per-channel prompt, identity and rendering."""

    channel: Channel
    session_prefix: str = "ML"

    def __init__(
        self,
        company_name: str = "MerchLab",
        support_contact: str = "hello@merchlab.io",
    ):
        self.company_name = company_name
        self.support_contact = support_contact

    def system_prompt(self) -> str:
        return build_system_prompt(self.channel, self.company_name, self.support_contact)

    @abstractmethod
    def identity(self, context: ChannelContext) -> Optional[str]:
        """The identifier this channel knows the customer by (phone or email)."""
        pass

    @abstractmethod
    def session_id_for(self, identity: str) -> str:
        """Derive the channel-qualified session id for a customer identity."""
        pass

    @abstractmethod
    def build_context(
        self,
        session_id: str,
        text: str,
        channel_identity: Optional[str],
        customer_name: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> ChannelContext:
        """Build the per-message channel context."""
        pass

    def compose_customer_message(self, context: ChannelContext) -> str:
        """Text of the customer turn as it enters the prompt and memory."""
        return context.original_message

    @abstractmethod
    def render(self, response: AgentResponse, context: ChannelContext) -> ChannelPayload:
        """Render the final response for the transport."""
        pass
