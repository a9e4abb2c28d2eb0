"""
Domain entities for the customer-service agent.

These are pure domain objects with no infrastructure dependencies.
They define the core data structures used throughout the agent module.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# ============================================
# Channels
# ============================================


class Channel(str, Enum):
    """Messaging surface a conversation takes place on."""

    CHAT = "chat"  # WhatsApp-style instant messaging
    EMAIL = "email"


@dataclass(frozen=True)
class ChannelContext:
    """Per-message context passed to tool handlers.

    Attributes:
        channel: Channel the message arrived on
        session_id: Channel-qualified session identifier
        original_message: Raw text of the inbound customer message
        phone: Customer phone number (chat channel)
        email: Customer email address (email channel)
        customer_name: Display name reported by the channel, if any
        subject: Email subject line (email channel only)
    """

    channel: Channel
    session_id: str
    original_message: str
    phone: Optional[str] = None
    email: Optional[str] = None
    customer_name: Optional[str] = None
    subject: Optional[str] = None

    def __post_init__(self):
        if not self.session_id:
            raise ValueError("session_id is required")

    @property
    def identity(self) -> Optional[str]:
        """The identifier the channel knows the customer by."""
        if self.channel == Channel.EMAIL:
            return self.email or self.phone
        return self.phone or self.email


# ============================================
# Conversation Turns
# ============================================


class TurnRole(str, Enum):
    """Author of a persisted turn."""

    CUSTOMER = "customer"
    AGENT = "agent"


@dataclass(frozen=True)
class Turn:
    """One customer- or agent-authored message within a session.

    ``created_at`` is None for stored rows that carry no timestamp.
    """

    role: TurnRole
    content: str
    created_at: Optional[datetime] = field(default_factory=datetime.utcnow)


# ============================================
# Prompt Messages
# ============================================


class MessageRole(str, Enum):
    """Role of a message in a completion request."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


@dataclass
class Message:
    """A single message in the in-flight prompt.

    Attributes:
        role: Message role (user, assistant, system, tool)
        content: Message text content
        tool_calls: Tool calls proposed by an assistant message, or the call a
            tool message answers
    """

    role: MessageRole
    content: str
    tool_calls: Optional[list[ToolCall]] = None

    @classmethod
    def from_turn(cls, turn: Turn) -> Message:
        role = MessageRole.USER if turn.role == TurnRole.CUSTOMER else MessageRole.ASSISTANT
        return cls(role=role, content=turn.content)


# ============================================
# Tool System
# ============================================


@dataclass(frozen=True)
class ToolSpec:
    """Declarative, channel-independent definition of a callable tool.

    Attributes:
        name: Unique tool name (e.g., 'get_quote_info')
        description: Instructions for the model on when to call the tool
        parameters: JSON Schema properties for the tool arguments
        required_params: Parameters the model must always supply
        identity_param: Optional identifying parameter the dispatcher fills
            from the channel identity when the model omits it
        delivers_document: True if results may carry a deliverable document
        prefixed_params: (parameter, prefix) pairs stripped before dispatch
    """

    name: str
    description: str
    parameters: dict[str, Any]
    required_params: tuple[str, ...] = ()
    identity_param: Optional[str] = None
    delivers_document: bool = False
    prefixed_params: tuple[tuple[str, str], ...] = ()

    @property
    def json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": self.parameters,
            "required": list(self.required_params),
        }

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema,
            },
        }

    def to_anthropic_format(self) -> dict[str, Any]:
        """Convert to Anthropic tool use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.json_schema,
        }


@dataclass
class ToolCall:
    """A tool invocation proposed by the model.

    Attributes:
        id: Tool call identifier (for correlating the result)
        name: Tool name being called
        arguments: Arguments passed to the tool
    """

    name: str
    arguments: dict[str, Any]
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:24]}")


@dataclass(frozen=True)
class Attachment:
    """A side-channel deliverable accompanying a reply."""

    url: str
    caption: str
    id: str


@dataclass
class ToolOutput:
    """Rich handler return value.

    Handlers may return plain data, ``None`` for not-found, or a ToolOutput
    when the lookup resolved to a deliverable document.
    """

    data: Any
    attachment: Optional[Attachment] = None


@dataclass
class ToolResult:
    """Result of dispatching one tool call.

    Attributes:
        tool_call_id: ID of the tool call this is a result for
        tool_name: Name of the tool that ran
        success: False if the handler failed or the tool was unavailable
        found: False if the handler reported not-found
        summary: Redacted, bounded text safe to inject into the prompt
        attachment: Candidate document attachment, if any
        redaction_count: Number of non-shareable fields stripped
        latency_ms: Execution time in milliseconds
    """

    tool_call_id: str
    tool_name: str
    success: bool
    summary: str
    found: bool = True
    attachment: Optional[Attachment] = None
    redaction_count: int = 0
    latency_ms: Optional[int] = None


# ============================================
# Completion
# ============================================


class ErrorType(str, Enum):
    """Classification of completion-service failures."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


@dataclass
class CompletionResult:
    """One response from the model completion service."""

    text: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: Optional[str] = None
    finish_reason: Optional[str] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


# ============================================
# Orchestration
# ============================================


class DocumentIntent(str, Enum):
    """Whether a customer message asks for a document to be (re)sent."""

    SEND_DOCUMENT = "send_document"
    ASK_ABOUT_CONTENT = "ask_about_content"


class LoopState(str, Enum):
    """States of the per-message orchestration loop."""

    COMPOSE_PROMPT = "compose_prompt"
    CALL_MODEL = "call_model"
    EXECUTE_TOOL = "execute_tool"
    INJECT_RESULT = "inject_result"
    DONE = "done"


@dataclass
class AgentResponse:
    """Final reply produced for one inbound message.

    ``text`` never embeds attachment data; deliverables travel in
    ``attachments`` and are rendered separately by the channel adapter.
    """

    text: str
    attachments: list[Attachment] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    tool_rounds: int = 0

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)


# ============================================
# Human Control & Escalation
# ============================================


@dataclass(frozen=True)
class HumanControlState:
    """Whether a human operator has taken over a session."""

    session_id: str
    is_human_controlled: bool
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class EscalationRequest:
    """Payload handed to the escalation notifier."""

    reason: str
    summary: str
    session_id: str
    channel: Channel
    channel_identity: Optional[str] = None
    customer_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "summary": self.summary,
            "session_id": self.session_id,
            "channel": self.channel.value,
            "channel_identity": self.channel_identity,
            "customer_name": self.customer_name,
        }
