"""
Human-Control Gate.

Per-session switch letting a human operator fully override the agent. While
a session is human-controlled the agent must not compose or send a reply.

Read failures default to agent control so an unavailable store never looks
like an outage to the customer. Write failures propagate: the operator must
know when a takeover did not take effect.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..domain.entities import HumanControlState
from ..domain.ports import IHumanControlStore
from ..exceptions import StoreError
from ..memory.conversation import IAsyncDBPool, validate_table_name

logger = logging.getLogger(__name__)


class HumanControlGate:
    """Reads and flips the human-control flag.

    Usage:
        gate = HumanControlGate(PostgresHumanControlStore(pool))

        if await gate.is_human_in_control(session_id):
            return  # operator is handling this conversation

        await gate.set_human_control(session_id, True)
    """

    def __init__(self, store: IHumanControlStore):
        self.store = store

    async def is_human_in_control(self, session_id: str) -> bool:
        """True if a human operator has taken over the session.

        Absent state and store failures both mean False.
        """
        try:
            state = await self.store.get(session_id)
        except Exception as e:
            logger.error(
                f"Failed to read human-control state for {session_id}: {e}. "
                "Defaulting to agent control."
            )
            return False

        if state is None:
            return False
        return state.is_human_controlled is True

    async def get_state(self, session_id: str) -> HumanControlState:
        """Current state, with absent or unreadable state reported as agent-controlled."""
        try:
            state = await self.store.get(session_id)
        except Exception as e:
            logger.error(f"Failed to read human-control state for {session_id}: {e}")
            state = None
        return state or HumanControlState(session_id=session_id, is_human_controlled=False)

    async def set_human_control(self, session_id: str, is_human_controlled: bool) -> HumanControlState:
        """Flip the flag for a session.

        Raises:
            StoreError: The store could not persist the change
        """
        try:
            state = await self.store.set(session_id, is_human_controlled)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to set human-control state for {session_id}: {e}",
                store="human_control",
                cause=e,
            ) from e

        logger.info(
            f"Session {session_id} is now "
            f"{'human-controlled' if is_human_controlled else 'agent-controlled'}"
        )
        return state


class InMemoryHumanControlStore(IHumanControlStore):
    """Process-local human-control flags for development and tests."""

    def __init__(self):
        self._states: dict[str, HumanControlState] = {}

    async def get(self, session_id: str) -> Optional[HumanControlState]:
        return self._states.get(session_id)

    async def set(self, session_id: str, is_human_controlled: bool) -> HumanControlState:
        state = HumanControlState(
            session_id=session_id,
            is_human_controlled=is_human_controlled,
            updated_at=datetime.utcnow(),
        )
        self._states[session_id] = state
        return state


class PostgresHumanControlStore(IHumanControlStore):
    """PostgreSQL human-control table keyed by session_id.

    Expects ``(session_id text primary key, is_human_controlled boolean,
    updated_at timestamptz)``. Writes are upserts; last writer wins.
    """

    def __init__(self, db_pool: IAsyncDBPool, table: str = "whatsapp_human_control"):
        self.db = db_pool
        self.table = validate_table_name(table)

    async def get(self, session_id: str) -> Optional[HumanControlState]:
        row = await self.db.fetchrow(
            f"SELECT session_id, is_human_controlled, updated_at FROM {self.table} WHERE session_id = $1",
            session_id,
        )
        if not row:
            return None
        return HumanControlState(
            session_id=row["session_id"],
            is_human_controlled=row["is_human_controlled"] is True,
            updated_at=row["updated_at"],
        )

    async def set(self, session_id: str, is_human_controlled: bool) -> HumanControlState:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO {self.table} (session_id, is_human_controlled, updated_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (session_id)
            DO UPDATE SET is_human_controlled = EXCLUDED.is_human_controlled,
                          updated_at = EXCLUDED.updated_at
            RETURNING session_id, is_human_controlled, updated_at
            """,
            session_id,
            is_human_controlled,
        )
        return HumanControlState(
            session_id=row["session_id"],
            is_human_controlled=row["is_human_controlled"],
            updated_at=row["updated_at"],
        )
