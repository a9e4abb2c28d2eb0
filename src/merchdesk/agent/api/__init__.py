"""Agent API layer.

Provides the FastAPI router for inbound messages and operator actions.
"""

from .router import SessionLocks, create_agent_dependencies, router
from .schemas import (
    HumanControlRequest,
    HumanControlResponse,
    InboundMessageRequest,
    InboundMessageResponse,
    OperatorReplyRequest,
    OperatorReplyResponse,
)

__all__ = [
    "router",
    "create_agent_dependencies",
    "SessionLocks",
    "HumanControlRequest",
    "HumanControlResponse",
    "InboundMessageRequest",
    "InboundMessageResponse",
    "OperatorReplyRequest",
    "OperatorReplyResponse",
]
