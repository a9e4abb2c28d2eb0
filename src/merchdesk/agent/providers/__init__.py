"""Model completion providers."""

from .anthropic import AnthropicProvider
from .base import BaseCompletionProvider, LLMProviderConfig
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "BaseCompletionProvider",
    "LLMProviderConfig",
    "OpenAIProvider",
]
