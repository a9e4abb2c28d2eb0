"""Domain entities and port interfaces for the agent module."""

from .entities import (
    AgentResponse,
    Attachment,
    Channel,
    ChannelContext,
    CompletionResult,
    DocumentIntent,
    ErrorType,
    EscalationRequest,
    HumanControlState,
    LoopState,
    Message,
    MessageRole,
    ToolCall,
    ToolOutput,
    ToolResult,
    ToolSpec,
    Turn,
    TurnRole,
)
from .ports import (
    ICompletionService,
    IConversationMemory,
    IEscalationNotifier,
    IHumanControlStore,
    IToolHandler,
    ITurnStore,
)

__all__ = [
    # Entities
    "AgentResponse",
    "Attachment",
    "Channel",
    "ChannelContext",
    "CompletionResult",
    "DocumentIntent",
    "ErrorType",
    "EscalationRequest",
    "HumanControlState",
    "LoopState",
    "Message",
    "MessageRole",
    "ToolCall",
    "ToolOutput",
    "ToolResult",
    "ToolSpec",
    "Turn",
    "TurnRole",
    # Ports
    "ICompletionService",
    "IConversationMemory",
    "IEscalationNotifier",
    "IHumanControlStore",
    "IToolHandler",
    "ITurnStore",
]
