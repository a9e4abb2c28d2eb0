"""
Port interfaces (abstract base classes) for the agent module.

These define the contracts that adapters must implement.
Following the Ports & Adapters (Hexagonal) architecture pattern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from .entities import (
        ChannelContext,
        CompletionResult,
        EscalationRequest,
        HumanControlState,
        Message,
        ToolSpec,
        Turn,
    )


# ============================================
# Model Completion Service
# ============================================


class ICompletionService(ABC):
    """Interface for model completion providers (GPT, Claude, etc.).

    Implementations handle the specifics of each API while providing a
    consistent, non-streaming interface to the orchestrator.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Generate one response to the prompt.

        Args:
            messages: Prompt messages (system, user, assistant, tool roles)
            tools: Tools the model may propose calls for
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            CompletionResult with text and zero or more proposed tool calls

        Raises:
            CompletionServiceError: The service is unavailable or failed
        """
        pass


# ============================================
# Tool Handler Interface
# ============================================


class IToolHandler(ABC):
    """One handler per tool name.

    Returns the lookup result (plain data or ``ToolOutput``), or ``None`` when
    no matching record exists. May raise on I/O failure.
    """

    @abstractmethod
    async def handle(self, arguments: dict[str, Any], context: ChannelContext) -> Any:
        pass


# ============================================
# Conversation Memory Interfaces
# ============================================


class ITurnStore(ABC):
    """Raw durable storage for conversation turns.

    Implementations may raise on failure; ConversationMemory applies the
    best-effort policy on top.
    """

    @abstractmethod
    async def append_turn(self, session_id: str, turn: Turn) -> None:
        """Persist one turn at the end of the session."""
        pass

    @abstractmethod
    async def fetch_recent(self, session_id: str, limit: int) -> list[Turn]:
        """Return up to ``limit`` most recent turns, in any order."""
        pass


class IConversationMemory(ABC):
    """Append/load of bounded, ordered per-session turns."""

    @abstractmethod
    async def append(self, session_id: str, role: Any, content: str) -> None:
        """Append a turn. Never raises."""
        pass

    @abstractmethod
    async def load(self, session_id: str) -> list[Turn]:
        """Most recent window of turns, oldest first. Never raises."""
        pass


# ============================================
# Human Control Store Interface
# ============================================


class IHumanControlStore(ABC):
    """Per-session human takeover flag."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[HumanControlState]:
        """Return the stored state, or None if the session has none."""
        pass

    @abstractmethod
    async def set(self, session_id: str, is_human_controlled: bool) -> HumanControlState:
        """Insert or update the state for a session (last writer wins)."""
        pass


# ============================================
# Escalation Notifier Interface
# ============================================


class IEscalationNotifier(ABC):
    """Notifies staff that a conversation needs a human."""

    @abstractmethod
    async def notify(self, request: EscalationRequest) -> bool:
        """Send the notification.

        Returns:
            True if delivered, False otherwise
        """
        pass
