"""
FastAPI Router for the customer-service agent.

Exposes the orchestrator to the ingestion layer (inbound messages) and to
operators (human takeover, operator replies).
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..control.human_control import HumanControlGate
from ..exceptions import CompletionServiceError, ConfigurationError, StoreError
from ..orchestrator import AgentOrchestrator
from .auth import verify_api_key
from .schemas import (
    AttachmentResponse,
    HumanControlRequest,
    HumanControlResponse,
    InboundMessageRequest,
    InboundMessageResponse,
    OperatorReplyRequest,
    OperatorReplyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent", tags=["agent"], dependencies=[Depends(verify_api_key)])


# =============================================================================
# Per-session serialisation
# =============================================================================


class SessionLocks:
    """One asyncio.Lock per session id, dropped when nobody holds or waits on it.

    Usage:
        async with locks.hold("ML-27821234567"):
            ...
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if self._users[session_id] <= 0:
                self._users.pop(session_id, None)
                self._locks.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._locks)


# =============================================================================
# Dependencies
# =============================================================================


class AgentDependencies:
    """Container for agent dependencies.

    Injected at application startup.
    """

    orchestrator: Optional[AgentOrchestrator] = None
    session_locks: SessionLocks = SessionLocks()


_deps = AgentDependencies()


def create_agent_dependencies(orchestrator: Optional[AgentOrchestrator]) -> None:
    """Initialize agent dependencies.

    Call this at application startup.

    Args:
        orchestrator: The agent orchestrator (None to reset)
    """
    _deps.orchestrator = orchestrator
    _deps.session_locks = SessionLocks()


def get_orchestrator() -> AgentOrchestrator:
    """Get the agent orchestrator dependency."""
    if not _deps.orchestrator:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Agent not initialized",
        )
    return _deps.orchestrator


def get_human_control(
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> HumanControlGate:
    """Get the human-control gate dependency."""
    if orchestrator.human_control is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Human control not configured",
        )
    return orchestrator.human_control


# =============================================================================
# Inbound Messages
# =============================================================================


@router.post("/messages", response_model=InboundMessageResponse)
async def handle_inbound_message(
    request: InboundMessageRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> InboundMessageResponse:
    """Process one inbound customer message and return the rendered reply.

    Messages for the same session are processed one at a time.
    """
    try:
        adapter = orchestrator.get_adapter(request.channel)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    session_id = request.session_id or adapter.session_id_for(request.channel_identity)
    context = adapter.build_context(
        session_id=session_id,
        text=request.text,
        channel_identity=request.channel_identity,
        customer_name=request.customer_name,
        subject=request.subject,
    )

    async with _deps.session_locks.hold(session_id):
        try:
            response = await orchestrator.respond(context)
        except CompletionServiceError as e:
            logger.error(f"Completion failed for session {session_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="The assistant is temporarily unavailable. Please try again later.",
            )

    if response is None:
        return InboundMessageResponse(session_id=session_id, status="human_controlled")

    payload = orchestrator.render(response, context)
    return InboundMessageResponse(
        session_id=session_id,
        status="replied",
        text=response.text,
        attachments=[
            AttachmentResponse(id=a.id, url=a.url, caption=a.caption) for a in response.attachments
        ],
        tools_used=response.tools_used,
        payload=payload.to_dict(),
    )


# =============================================================================
# Operator Endpoints
# =============================================================================


@router.get("/sessions/{session_id}/human-control", response_model=HumanControlResponse)
async def get_human_control_state(
    session_id: str,
    gate: HumanControlGate = Depends(get_human_control),
) -> HumanControlResponse:
    """Get whether a human operator controls the session."""
    state = await gate.get_state(session_id)
    return HumanControlResponse(
        session_id=session_id,
        is_human_controlled=state.is_human_controlled,
        updated_at=state.updated_at,
    )


@router.put("/sessions/{session_id}/human-control", response_model=HumanControlResponse)
async def set_human_control_state(
    session_id: str,
    request: HumanControlRequest,
    gate: HumanControlGate = Depends(get_human_control),
) -> HumanControlResponse:
    """Take over (true) or hand back (false) a session."""
    try:
        state = await gate.set_human_control(session_id, request.is_human_controlled)
    except StoreError as e:
        logger.error(f"Human-control update failed for {session_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not update human-control state",
        )

    return HumanControlResponse(
        session_id=session_id,
        is_human_controlled=state.is_human_controlled,
        updated_at=state.updated_at,
    )


@router.post("/sessions/{session_id}/operator-replies", response_model=OperatorReplyResponse)
async def record_operator_reply(
    session_id: str,
    request: OperatorReplyRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> OperatorReplyResponse:
    """Record a reply an operator sent so the agent sees it in history."""
    async with _deps.session_locks.hold(session_id):
        await orchestrator.record_operator_reply(session_id, request.text)
    return OperatorReplyResponse(session_id=session_id)
