"""
Escalation Notifier.

Tells staff that a conversation needs a human. The production notifier posts
to a webhook (a mail relay or chat-ops hook) over aiohttp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from ..domain.entities import EscalationRequest
from ..domain.ports import IEscalationNotifier
from ..exceptions import EscalationError

logger = logging.getLogger(__name__)


@dataclass
class WebhookNotifierConfig:
    """Configuration for the webhook escalation notifier."""

    webhook_url: str
    timeout: float = 10.0
    api_key: Optional[str] = None
    company_name: str = "MerchLab"


def build_escalation_subject(request: EscalationRequest) -> str:
    who = request.customer_name or request.channel_identity or request.session_id
    return f"Escalation: {who} ({request.channel.value})"


def build_escalation_body(request: EscalationRequest) -> str:
    """Plain-text body listing everything staff need to pick up the thread."""
    lines = [
        "A customer conversation has been escalated to a human.",
        "",
        f"Reason: {request.reason}",
        f"Channel: {request.channel.value}",
        f"Session: {request.session_id}",
        f"Customer: {request.customer_name or 'Unknown'}",
        f"Contact: {request.channel_identity or 'Unknown'}",
        "",
        "Summary:",
        request.summary or "(no summary provided)",
    ]
    return "\n".join(lines)


class WebhookEscalationNotifier(IEscalationNotifier):
    """Posts escalation notifications to a webhook.

    Usage:
        notifier = WebhookEscalationNotifier(
            WebhookNotifierConfig(webhook_url="https://hooks.example.com/escalations")
        )
        delivered = await notifier.notify(request)
    """

    def __init__(self, config: WebhookNotifierConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def notify(self, request: EscalationRequest) -> bool:
        """Send the notification.

        Returns:
            True if the webhook accepted it

        Raises:
            EscalationError: The webhook rejected the request or was unreachable
        """
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        payload = {
            **request.to_dict(),
            "subject": build_escalation_subject(request),
            "body": build_escalation_body(request),
            "source": self.config.company_name,
        }

        session = await self._get_session()
        try:
            async with session.post(self.config.webhook_url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise EscalationError(
                        f"Escalation webhook returned {response.status}: {text[:200]}",
                        status=response.status,
                    )
        except aiohttp.ClientError as e:
            raise EscalationError(f"Escalation webhook unreachable: {e}", cause=e) from e

        logger.info(f"Escalation sent for session {request.session_id}")
        return True


class LoggingEscalationNotifier(IEscalationNotifier):
    """Development notifier that only logs the escalation."""

    async def notify(self, request: EscalationRequest) -> bool:
        logger.warning(f"{build_escalation_subject(request)}\n{build_escalation_body(request)}")
        return True
