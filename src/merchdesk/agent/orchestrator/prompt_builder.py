"""
Prompt Builder for Agent Orchestrator.

Encapsulates prompt construction:
- Building the system prompt from the channel prompt
- Adding the customer context block (name, channel, known contact details)
- Seeding the in-flight message list with history and the new customer turn
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain.entities import ChannelContext, Message, MessageRole, Turn

logger = logging.getLogger(__name__)


class PromptBuilder:
    """Manages prompt construction for the agent.

    Usage:
        prompt_builder = PromptBuilder()

        system_prompt = prompt_builder.build(adapter.system_prompt(), context)
        messages = prompt_builder.build_messages(system_prompt, history, customer_text)
    """

    def build(self, base_prompt: str, context: Optional[ChannelContext] = None) -> str:
        """Build the system prompt with the customer context block.

        The block lists what the channel already knows about the customer so
        the model never asks for it again.

        Args:
            base_prompt: Channel system prompt
            context: Channel context of the inbound message

        Returns:
            Complete system prompt
        """
        if context is None:
            return base_prompt

        lines = [f"- Channel: {context.channel.value}"]
        if context.customer_name:
            lines.append(f"- Customer name: {context.customer_name}")
        if context.phone:
            lines.append(f"- Phone number: {context.phone}")
        if context.email:
            lines.append(f"- Email address: {context.email}")
        if context.subject:
            lines.append(f"- Email subject: {context.subject}")

        return (
            base_prompt
            + "\n\nCUSTOMER CONTEXT (already known; do not ask the customer for these):\n"
            + "\n".join(lines)
        )

    def build_messages(
        self,
        system_prompt: str,
        history: list[Turn],
        customer_text: str,
    ) -> list[Message]:
        """Seed the in-flight prompt: system, history (oldest first), new turn."""
        messages = [Message(role=MessageRole.SYSTEM, content=system_prompt)]
        messages.extend(Message.from_turn(turn) for turn in history)
        messages.append(Message(role=MessageRole.USER, content=customer_text))
        return messages
