"""
Memory module for the customer-service agent.

Provides:
- ConversationMemory: best-effort, windowed per-session history
- PostgresTurnStore / InMemoryTurnStore: raw turn storage backends
- normalize_turn_row: heterogeneous chat-history row probing
"""

from .conversation import (
    DEFAULT_WINDOW,
    ConversationMemory,
    InMemoryTurnStore,
    PostgresTurnStore,
)
from .normalizer import normalize_turn_row, parse_role, parse_timestamp

__all__ = [
    "DEFAULT_WINDOW",
    "ConversationMemory",
    "InMemoryTurnStore",
    "PostgresTurnStore",
    "normalize_turn_row",
    "parse_role",
    "parse_timestamp",
]
