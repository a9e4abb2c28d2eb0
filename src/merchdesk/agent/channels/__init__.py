"""
Channel adapters for the customer-service agent.

Provides:
- ChatChannelAdapter: instant messaging keyed by phone number
- EmailChannelAdapter: email keyed by sender address
- build_adapters: one adapter per Channel
"""

from ..domain.entities import Channel
from .base import ChannelAdapter, ChannelPayload, OutboundMessage
from .chat import ChatChannelAdapter, normalize_phone, to_chat_markup
from .email import EmailChannelAdapter, markdown_to_html, strip_envelope_text
from .prompts import build_system_prompt


def build_adapters(
    company_name: str = "MerchLab",
    support_contact: str = "hello@merchlab.io",
) -> dict[Channel, ChannelAdapter]:
    """Create one adapter per channel."""
    return {
        Channel.CHAT: ChatChannelAdapter(company_name, support_contact),
        Channel.EMAIL: EmailChannelAdapter(company_name, support_contact),
    }


__all__ = [
    "ChannelAdapter",
    "ChannelPayload",
    "ChatChannelAdapter",
    "EmailChannelAdapter",
    "OutboundMessage",
    "build_adapters",
    "build_system_prompt",
    "markdown_to_html",
    "normalize_phone",
    "strip_envelope_text",
    "to_chat_markup",
]
