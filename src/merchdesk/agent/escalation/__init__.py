"""Escalation notification adapters."""

from .notifier import (
    LoggingEscalationNotifier,
    WebhookEscalationNotifier,
    WebhookNotifierConfig,
)

__all__ = [
    "LoggingEscalationNotifier",
    "WebhookEscalationNotifier",
    "WebhookNotifierConfig",
]
