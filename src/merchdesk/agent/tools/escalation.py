"""
Escalation tool handler.

Serves ``escalate_to_human``. The notifier is awaited under a timeout and its
outcome is reported back to the model as the tool result, so the closing
message can be adjusted. Failures never propagate out of the handler.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..domain.entities import ChannelContext, EscalationRequest
from ..domain.ports import IEscalationNotifier, IToolHandler

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Customer requested human assistance"


class EscalationToolHandler(IToolHandler):
    """Escalates a conversation to staff.

    Usage:
        handler = EscalationToolHandler(notifier, support_contact="hello@merchlab.io")
        registry = ToolRegistry({"escalate_to_human": handler, ...})
    """

    def __init__(
        self,
        notifier: IEscalationNotifier,
        support_contact: str,
        timeout_seconds: float = 10.0,
    ):
        """Initialize the handler.

        Args:
            notifier: Staff notification adapter
            support_contact: Contact shared with the customer if notifying fails
            timeout_seconds: Maximum time to wait for the notifier
        """
        self.notifier = notifier
        self.support_contact = support_contact
        self.timeout_seconds = timeout_seconds

    async def handle(self, arguments: dict[str, Any], context: ChannelContext) -> dict[str, Any]:
        request = EscalationRequest(
            reason=arguments.get("reason") or DEFAULT_REASON,
            summary=arguments.get("conversation_summary") or context.original_message,
            session_id=context.session_id,
            channel=context.channel,
            channel_identity=context.identity,
            customer_name=context.customer_name,
        )

        delivered = False
        try:
            delivered = await asyncio.wait_for(
                self.notifier.notify(request),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Escalation notifier timed out after {self.timeout_seconds}s for {context.session_id}")
        except Exception as e:
            logger.error(f"Escalation notifier failed for {context.session_id}: {e}")

        if delivered:
            return {
                "escalated": True,
                "message": (
                    "Staff have been notified. Tell the customer a team member "
                    "will be in touch shortly."
                ),
            }

        return {
            "escalated": False,
            "message": (
                "The escalation could not be sent. Apologise and ask the customer to "
                f"contact the team directly at {self.support_contact}."
            ),
        }
