"""
Tools module for the customer-service agent.

Provides:
- Tool catalog (static tool specs shared by all channels)
- ToolRegistry for dispatch, identity auto-fill and redaction
- Remote and in-process tool handlers
- Escalation tool handler
"""

from .catalog import AGENT_TOOLS, get_agent_tools, get_tool_spec
from .escalation import EscalationToolHandler
from .redaction import DEFAULT_DENYLIST, RedactionResult, ResultRedactor
from .registry import ToolRegistry, strip_reference_prefix
from .remote import (
    FunctionToolHandler,
    RemoteToolHandler,
    RemoteToolService,
    RemoteToolServiceConfig,
    build_remote_handlers,
)

__all__ = [
    "AGENT_TOOLS",
    "DEFAULT_DENYLIST",
    "EscalationToolHandler",
    "FunctionToolHandler",
    "RedactionResult",
    "RemoteToolHandler",
    "RemoteToolService",
    "RemoteToolServiceConfig",
    "ResultRedactor",
    "ToolRegistry",
    "build_remote_handlers",
    "get_agent_tools",
    "get_tool_spec",
    "strip_reference_prefix",
]
