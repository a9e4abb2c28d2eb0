"""
Chat (WhatsApp-style) channel adapter.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..domain.entities import AgentResponse, Channel, ChannelContext
from .base import ChannelAdapter, ChannelPayload, OutboundMessage

logger = logging.getLogger(__name__)

_DOUBLE_ASTERISK = re.compile(r"\*\*")
_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """International format without '+' or separators: '+27 82 123-4567' -> '27821234567'."""
    return _NON_DIGITS.sub("", phone or "")


def to_chat_markup(text: str) -> str:
    """Convert markdown bold (**x**) to chat bold (*x*)."""
    return _DOUBLE_ASTERISK.sub("*", text)


class ChatChannelAdapter(ChannelAdapter):
    """Instant-messaging channel keyed by phone number.

    Renders one text message followed by one document message per
    attachment; each is a separate transport call.
    """

    channel = Channel.CHAT

    def identity(self, context: ChannelContext) -> Optional[str]:
        return context.phone

    def session_id_for(self, identity: str) -> str:
        return f"{self.session_prefix}-{normalize_phone(identity)}"

    def build_context(
        self,
        session_id: str,
        text: str,
        channel_identity: Optional[str],
        customer_name: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> ChannelContext:
        phone = normalize_phone(channel_identity) if channel_identity else None
        return ChannelContext(
            channel=self.channel,
            session_id=session_id,
            original_message=text,
            phone=phone or None,
            customer_name=customer_name,
        )

    def render(self, response: AgentResponse, context: ChannelContext) -> ChannelPayload:
        recipient = normalize_phone(context.phone or "")
        if not recipient:
            logger.warning(f"No phone number for chat session {context.session_id}")

        messages = [
            OutboundMessage(
                kind="text",
                recipient=recipient,
                text=to_chat_markup(response.text),
            )
        ]
        for attachment in response.attachments:
            messages.append(
                OutboundMessage(
                    kind="document",
                    recipient=recipient,
                    document_url=attachment.url,
                    caption=attachment.caption,
                )
            )

        return ChannelPayload(
            channel=self.channel,
            recipient=recipient,
            messages=messages,
            attachments=list(response.attachments),
        )
