"""
Orchestrator module for the customer-service agent.

Provides:
- AgentOrchestrator: per-message gate, prompt, model/tool loop, persistence
- DocumentRequestClassifier: send-vs-ask document intent
- PromptBuilder: system prompt and message construction
- ToolExecutor: tool dispatch with failure containment
"""

from .agent import DEFAULT_FALLBACK_REPLY, AgentConfig, AgentOrchestrator
from .intent import DocumentRequestClassifier
from .prompt_builder import PromptBuilder
from .tool_executor import ToolExecutor

__all__ = [
    "DEFAULT_FALLBACK_REPLY",
    "AgentConfig",
    "AgentOrchestrator",
    "DocumentRequestClassifier",
    "PromptBuilder",
    "ToolExecutor",
]
