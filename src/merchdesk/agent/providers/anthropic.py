"""
Anthropic Claude Completion Provider.

Implements the ICompletionService interface for Anthropic's Claude models,
with tool use. Requests are non-streaming.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..domain.entities import (
    CompletionResult,
    ErrorType,
    Message,
    MessageRole,
    ToolCall,
    ToolSpec,
)
from ..exceptions import CompletionServiceError
from .base import BaseCompletionProvider, LLMProviderConfig

logger = logging.getLogger(__name__)

# Lazy import to avoid requiring anthropic if not used
try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    ANTHROPIC_AVAILABLE = False
    anthropic = None
    AsyncAnthropic = None


class AnthropicProvider(BaseCompletionProvider):
    """Anthropic Claude provider implementation.

    Usage:
        config = LLMProviderConfig(
            api_key="sk-ant-...",
            model="claude-sonnet-4-5-20250929",
        )
        provider = AnthropicProvider(config)

        result = await provider.complete(messages, tools=registry.get_tools())
    """

    DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
    provider_name = "anthropic"

    def __init__(self, config: LLMProviderConfig):
        """Initialize the Anthropic provider.

        Args:
            config: Provider configuration

        Raises:
            ImportError: If anthropic package is not installed
        """
        if not ANTHROPIC_AVAILABLE:
            raise ImportError(
                "anthropic package is required for AnthropicProvider. "
                "Install with: pip install anthropic"
            )

        super().__init__(config)

        self.client = AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def _format_messages_for_api(
        self, messages: list[Message]
    ) -> tuple[Optional[str], list[dict[str, Any]]]:
        """Convert messages to Anthropic format.

        Anthropic uses a separate system parameter, not in messages.

        Returns:
            Tuple of (system_prompt, messages_list)
        """
        api_messages: list[dict[str, Any]] = []
        system: Optional[str] = None

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system = f"{system}\n\n{msg.content}" if system else msg.content
            elif msg.role == MessageRole.TOOL:
                # Tool results are sent as user content blocks
                api_messages.append({
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": msg.tool_calls[0].id if msg.tool_calls else "unknown",
                            "content": msg.content,
                        }
                    ],
                })
            elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
                content_blocks: list[dict[str, Any]] = []
                if msg.content:
                    content_blocks.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    content_blocks.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": tc.arguments,
                    })
                api_messages.append({"role": "assistant", "content": content_blocks})
            else:
                api_messages.append({
                    "role": msg.role.value,
                    "content": msg.content,
                })

        return system, api_messages

    def _format_tools_for_api(self, tools: Sequence[ToolSpec]) -> list[dict[str, Any]]:
        """Convert tools to Anthropic format."""
        return [tool.to_anthropic_format() for tool in tools]

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Generate a response using Claude.

        Args:
            messages: Prompt messages
            tools: Available tools
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            CompletionResult

        Raises:
            CompletionServiceError: On any API failure
        """
        system, api_messages = self._format_messages_for_api(messages)

        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": api_messages,
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": temperature,
        }

        if system:
            kwargs["system"] = system

        if tools:
            kwargs["tools"] = self._format_tools_for_api(tools)

        try:
            response = await self.client.messages.create(**kwargs)

        except anthropic.RateLimitError as e:
            logger.warning(f"Rate limited by Anthropic: {e}")
            raise CompletionServiceError(
                f"Rate limited: {e}", error_type=ErrorType.RATE_LIMIT, provider=self.provider_name, cause=e
            ) from e
        except anthropic.APITimeoutError as e:
            logger.error(f"Anthropic API timeout: {e}")
            raise CompletionServiceError(
                f"Request timed out: {e}", error_type=ErrorType.TIMEOUT, provider=self.provider_name, cause=e
            ) from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise CompletionServiceError(
                f"API error: {e}", error_type=ErrorType.RECOVERABLE, provider=self.provider_name, cause=e
            ) from e

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=dict(block.input or {}),
                    )
                )

        return CompletionResult(
            text="".join(text_parts) or None,
            tool_calls=tool_calls,
            model=response.model,
            finish_reason=response.stop_reason,
        )

    async def close(self) -> None:
        """Close the client."""
        await self.client.close()
