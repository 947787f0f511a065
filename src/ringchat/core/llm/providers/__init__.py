"""LLM provider implementations."""

from ringchat.core.llm.providers.anthropic import AnthropicProvider
from ringchat.core.llm.providers.mock import MockProvider
from ringchat.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
