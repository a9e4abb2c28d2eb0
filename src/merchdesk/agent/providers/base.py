"""
Base Completion Provider Implementation.

Provides common functionality for all model completion providers.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from ..domain.entities import CompletionResult, Message, ToolSpec
from ..domain.ports import ICompletionService

logger = logging.getLogger(__name__)


@dataclass
class LLMProviderConfig:
    """Configuration for completion providers.

    Attributes:
        api_key: API key for the provider
        model: Model name to use
        base_url: Optional custom base URL
        timeout: Request timeout in seconds
        max_retries: Retry attempts made by the vendor SDK
        max_tokens: Default max tokens
    """

    api_key: str
    model: str
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 2
    max_tokens: int = 1024
    extra: dict[str, Any] = field(default_factory=dict)


def parse_tool_arguments(raw: Any) -> dict[str, Any]:
    """Decode tool-call arguments the model sent as a JSON string."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Model sent unparseable tool arguments: {str(raw)[:200]}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class BaseCompletionProvider(ICompletionService, ABC):
    """Base class for completion provider implementations.

    Subclasses implement the vendor-specific request and response mapping
    and raise CompletionServiceError on any vendor failure.
    """

    provider_name = "base"

    def __init__(self, config: LLMProviderConfig):
        """Initialize the provider.

        Args:
            config: Provider configuration
        """
        self.config = config

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self.config.model

    @abstractmethod
    def _format_messages_for_api(self, messages: list[Message]) -> Any:
        """Convert domain messages to the vendor format."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Generate one response. Must be implemented by subclasses."""
        pass

    async def close(self) -> None:
        """Release the vendor client."""
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
