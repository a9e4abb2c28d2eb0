"""
MerchDesk customer-service agent.

Conversational orchestration engine for order, quote and invoice enquiries
over chat and email: a model-driven tool-calling loop, bounded conversation
memory, a human-takeover gate and per-channel rendering.
"""

from .channels import ChatChannelAdapter, EmailChannelAdapter, build_adapters
from .control import HumanControlGate, InMemoryHumanControlStore, PostgresHumanControlStore
from .domain.entities import (
    AgentResponse,
    Attachment,
    Channel,
    ChannelContext,
    DocumentIntent,
    Turn,
    TurnRole,
)
from .exceptions import (
    CompletionServiceError,
    ConfigurationError,
    MerchDeskError,
    ToolExecutionError,
    UnknownToolError,
)
from .memory import ConversationMemory, InMemoryTurnStore, PostgresTurnStore
from .orchestrator import AgentConfig, AgentOrchestrator, DocumentRequestClassifier
from .providers import AnthropicProvider, LLMProviderConfig, OpenAIProvider
from .tools import ToolRegistry, get_agent_tools

__all__ = [
    # Domain
    "AgentResponse",
    "Attachment",
    "Channel",
    "ChannelContext",
    "DocumentIntent",
    "Turn",
    "TurnRole",
    # Errors
    "CompletionServiceError",
    "ConfigurationError",
    "MerchDeskError",
    "ToolExecutionError",
    "UnknownToolError",
    # Components
    "AgentConfig",
    "AgentOrchestrator",
    "AnthropicProvider",
    "ChatChannelAdapter",
    "ConversationMemory",
    "DocumentRequestClassifier",
    "EmailChannelAdapter",
    "HumanControlGate",
    "InMemoryHumanControlStore",
    "InMemoryTurnStore",
    "LLMProviderConfig",
    "OpenAIProvider",
    "PostgresHumanControlStore",
    "PostgresTurnStore",
    "ToolRegistry",
    "build_adapters",
    "get_agent_tools",
]
