"""
Conversation Memory Store.

Bounded, ordered per-session turns. ``ConversationMemory`` applies the
best-effort policy on top of a raw ``ITurnStore``: write failures are logged
and swallowed, read failures yield an empty history. Losing memory must
never block a reply.
"""

from __future__ import annotations

import json
import logging
import re
from collections import defaultdict
from typing import Any, Optional, Protocol

from ..domain.entities import Turn, TurnRole
from ..domain.ports import IConversationMemory, ITurnStore
from ..exceptions import ConfigurationError
from .normalizer import normalize_turn_row

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 20

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class IAsyncDBPool(Protocol):
    """Protocol for async database pool."""

    async def execute(self, query: str, *args) -> str: ...
    async def fetch(self, query: str, *args) -> list[Any]: ...
    async def fetchrow(self, query: str, *args) -> Optional[Any]: ...


def validate_table_name(name: str) -> str:
    """Reject table names that are not plain (optionally schema-qualified) identifiers."""
    if not _IDENTIFIER.match(name or ""):
        raise ConfigurationError(f"Invalid table name: {name!r}")
    return name


class ConversationMemory(IConversationMemory):
    """Best-effort append/load of per-session turns.

    Usage:
        memory = ConversationMemory(PostgresTurnStore(pool), window=20)

        await memory.append("ML-27821234567", TurnRole.CUSTOMER, "Hi")
        turns = await memory.load("ML-27821234567")  # oldest first, at most 20
    """

    def __init__(self, store: ITurnStore, window: int = DEFAULT_WINDOW):
        """Initialize the memory.

        Args:
            store: Raw turn storage backend
            window: Maximum number of turns returned by load()
        """
        if window < 1:
            raise ConfigurationError(f"Memory window must be positive, got {window}")
        self.store = store
        self.window = window

    async def append(self, session_id: str, role: TurnRole, content: str) -> None:
        """Append a turn. Store failures are logged, never raised."""
        if not content or not content.strip():
            logger.debug(f"Skipping empty {role.value} turn for session {session_id}")
            return

        turn = Turn(role=role, content=content.strip())
        try:
            await self.store.append_turn(session_id, turn)
        except Exception as e:
            logger.error(
                f"Failed to save {role.value} turn for session {session_id}: {e}. "
                "Memory will not be persisted, but the conversation continues."
            )

    async def load(self, session_id: str) -> list[Turn]:
        """Most recent window of turns, oldest first.

        Returns an empty history if the store fails.
        """
        try:
            turns = await self.store.fetch_recent(session_id, self.window)
        except Exception as e:
            logger.error(f"Failed to load history for session {session_id}: {e}. Continuing without memory.")
            return []

        # Store order is authoritative unless every turn carries a timestamp.
        # Stable sort keeps store order for equal timestamps.
        if all(t.created_at is not None for t in turns):
            turns = sorted(turns, key=lambda t: t.created_at)
        return list(turns)[-self.window:]


class InMemoryTurnStore(ITurnStore):
    """Process-local turn storage for development and tests."""

    def __init__(self):
        self._turns: dict[str, list[Turn]] = defaultdict(list)

    async def append_turn(self, session_id: str, turn: Turn) -> None:
        self._turns[session_id].append(turn)

    async def fetch_recent(self, session_id: str, limit: int) -> list[Turn]:
        return list(self._turns.get(session_id, [])[-limit:])

    def all_turns(self, session_id: str) -> list[Turn]:
        """Every stored turn for a session (not windowed)."""
        return list(self._turns.get(session_id, []))


class PostgresTurnStore(ITurnStore):
    """PostgreSQL chat-history table, one row per turn.

    Rows are written as ``(session_id, message)`` where ``message`` is a JSON
    document ``{"type": "human"|"ai", "content": ...}``, the format other
    writers of the table use. Reads go through ``normalize_turn_row`` so rows
    written in older shapes are still understood.

    Usage:
        pool = await asyncpg.create_pool(database_url)
        store = PostgresTurnStore(pool, table="n8n_chat_histories")
    """

    def __init__(self, db_pool: IAsyncDBPool, table: str = "n8n_chat_histories"):
        """Initialize the store.

        Args:
            db_pool: Async database connection pool
            table: Chat-history table name
        """
        self.db = db_pool
        self.table = validate_table_name(table)

    async def append_turn(self, session_id: str, turn: Turn) -> None:
        message = {
            "type": "ai" if turn.role == TurnRole.AGENT else "human",
            "content": turn.content,
            "additional_kwargs": {},
            "response_metadata": {},
        }
        await self.db.execute(
            f"INSERT INTO {self.table} (session_id, message) VALUES ($1, $2)",
            session_id,
            json.dumps(message),
        )

    async def fetch_recent(self, session_id: str, limit: int) -> list[Turn]:
        rows = await self.db.fetch(
            f"SELECT * FROM {self.table} WHERE session_id = $1 ORDER BY id DESC LIMIT $2",
            session_id,
            limit,
        )

        turns: list[Turn] = []
        # Newest first from the query; reverse to chronological order
        for row in reversed(rows):
            try:
                turn = normalize_turn_row(dict(row))
            except Exception as e:
                logger.warning(f"Skipping unparseable history row for session {session_id}: {e}")
                continue
            if turn is not None:
                turns.append(turn)

        logger.debug(f"Loaded {len(turns)} of {len(rows)} history rows for session {session_id}")
        return turns
