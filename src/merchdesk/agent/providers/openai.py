"""
OpenAI GPT Completion Provider.

Implements the ICompletionService interface for OpenAI's chat models,
with tool calling. Requests are non-streaming.
"""

from __future__ import annotations

import json
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
from .base import BaseCompletionProvider, LLMProviderConfig, parse_tool_arguments

logger = logging.getLogger(__name__)

# Lazy import to avoid requiring openai if not used
try:
    import openai
    from openai import AsyncOpenAI

    OPENAI_AVAILABLE = True
except ImportError:
    OPENAI_AVAILABLE = False
    openai = None
    AsyncOpenAI = None


class OpenAIProvider(BaseCompletionProvider):
    """OpenAI GPT provider implementation.

    Usage:
        config = LLMProviderConfig(api_key="sk-...", model="gpt-4o-mini")
        provider = OpenAIProvider(config)

        result = await provider.complete(messages, tools=registry.get_tools())
    """

    DEFAULT_MODEL = "gpt-4o-mini"
    provider_name = "openai"

    def __init__(self, config: LLMProviderConfig):
        """Initialize the OpenAI provider.

        Args:
            config: Provider configuration

        Raises:
            ImportError: If openai package is not installed
        """
        if not OPENAI_AVAILABLE:
            raise ImportError(
                "openai package is required for OpenAIProvider. "
                "Install with: pip install openai"
            )

        super().__init__(config)

        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def _format_messages_for_api(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert messages to OpenAI format.

        OpenAI includes system messages in the messages array.
        """
        api_messages = []

        for msg in messages:
            if msg.role == MessageRole.TOOL:
                # Tool results need special formatting
                api_messages.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_calls[0].id if msg.tool_calls else "unknown",
                    "content": msg.content,
                })
            elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
                # Assistant message with tool calls
                api_messages.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": json.dumps(tc.arguments),
                            },
                        }
                        for tc in msg.tool_calls
                    ],
                })
            else:
                api_messages.append({
                    "role": msg.role.value,
                    "content": msg.content,
                })

        return api_messages

    def _format_tools_for_api(self, tools: Sequence[ToolSpec]) -> list[dict[str, Any]]:
        """Convert tools to OpenAI format."""
        return [tool.to_openai_format() for tool in tools]

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Generate a response using GPT.

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
        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": self._format_messages_for_api(messages),
            "temperature": temperature,
        }

        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        if tools:
            kwargs["tools"] = self._format_tools_for_api(tools)
            kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**kwargs)

        except openai.RateLimitError as e:
            logger.warning(f"Rate limited by OpenAI: {e}")
            raise CompletionServiceError(
                f"Rate limited: {e}", error_type=ErrorType.RATE_LIMIT, provider=self.provider_name, cause=e
            ) from e
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI API timeout: {e}")
            raise CompletionServiceError(
                f"Request timed out: {e}", error_type=ErrorType.TIMEOUT, provider=self.provider_name, cause=e
            ) from e
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise CompletionServiceError(
                f"API error: {e}", error_type=ErrorType.RECOVERABLE, provider=self.provider_name, cause=e
            ) from e

        if not response.choices:
            raise CompletionServiceError(
                "OpenAI returned no choices", error_type=ErrorType.FATAL, provider=self.provider_name
            )

        choice = response.choices[0]
        message = choice.message

        tool_calls = []
        for tc in message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                continue
            tool_calls.append(
                ToolCall(
                    id=tc.id,
                    name=function.name,
                    arguments=parse_tool_arguments(function.arguments),
                )
            )

        return CompletionResult(
            text=message.content,
            tool_calls=tool_calls,
            model=response.model,
            finish_reason=choice.finish_reason,
        )

    async def close(self) -> None:
        """Close the client."""
        await self.client.close()
