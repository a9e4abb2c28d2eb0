"""
Agent settings.

All runtime configuration comes from environment variables. The application
entry point loads a ``.env`` file (python-dotenv) before calling
``AgentSettings.from_env()``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


@dataclass
class AgentSettings:
    """Runtime settings for the agent service."""

    # Completion provider
    llm_provider: Optional[str] = None  # "openai" | "anthropic"; auto-detected if unset
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Persistence
    database_url: Optional[str] = None
    chat_history_table: str = "n8n_chat_histories"
    human_control_table: str = "whatsapp_human_control"

    # Tool service
    tool_service_url: Optional[str] = None
    tool_service_api_key: Optional[str] = None

    # Escalation
    escalation_webhook_url: Optional[str] = None
    escalation_timeout_seconds: float = 10.0
    support_contact: str = "hello@merchlab.io"
    company_name: str = "MerchLab"

    # Orchestration
    max_tool_rounds: int = 5
    strict_tools: bool = False
    temperature: float = 0.3

    # API
    port: int = 8000

    @classmethod
    def from_env(cls) -> AgentSettings:
        """Read settings from environment variables."""
        return cls(
            llm_provider=(os.getenv("LLM_PROVIDER") or None),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929"),
            database_url=os.getenv("DATABASE_URL"),
            chat_history_table=os.getenv("CHAT_HISTORY_TABLE", "n8n_chat_histories"),
            human_control_table=os.getenv("HUMAN_CONTROL_TABLE", "whatsapp_human_control"),
            tool_service_url=os.getenv("TOOL_SERVICE_URL"),
            tool_service_api_key=os.getenv("TOOL_SERVICE_API_KEY"),
            escalation_webhook_url=os.getenv("ESCALATION_WEBHOOK_URL"),
            escalation_timeout_seconds=_env_float("ESCALATION_TIMEOUT_SECONDS", 10.0),
            support_contact=os.getenv("SUPPORT_CONTACT", "hello@merchlab.io"),
            company_name=os.getenv("COMPANY_NAME", "MerchLab"),
            max_tool_rounds=_env_int("AGENT_MAX_TOOL_ROUNDS", 5),
            strict_tools=_env_bool("AGENT_STRICT_TOOLS", False),
            temperature=_env_float("AGENT_TEMPERATURE", 0.3),
            port=_env_int("PORT", 8000),
        )

    def resolve_provider(self) -> str:
        """Pick the completion provider.

        An explicit LLM_PROVIDER wins; otherwise OpenAI is preferred when its
        key is set, then Anthropic.

        Raises:
            ConfigurationError: No usable provider is configured
        """
        provider = (self.llm_provider or "").strip().lower()
        if provider:
            if provider not in ("openai", "anthropic"):
                raise ConfigurationError(f"Unknown LLM_PROVIDER: {provider}")
            key = self.openai_api_key if provider == "openai" else self.anthropic_api_key
            if not key:
                raise ConfigurationError(
                    f"LLM_PROVIDER={provider} but its API key is not set",
                    missing_keys=[f"{provider.upper()}_API_KEY"],
                )
            return provider

        if self.openai_api_key:
            return "openai"
        if self.anthropic_api_key:
            return "anthropic"
        raise ConfigurationError(
            "No completion provider configured",
            missing_keys=["OPENAI_API_KEY", "ANTHROPIC_API_KEY"],
        )
