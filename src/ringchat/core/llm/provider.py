"""LLM provider protocol: abstract interface for streaming generation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Literal, Protocol, Union, runtime_checkable


@dataclass
class ConversationTurn:
    """One turn of a multi-turn exchange.

    ``model`` is the assistant side; providers map it to their own role name.
    """

    role: Literal["user", "model"]
    text: str


# Either a single flattened prompt or an ordered list of turns.
GenerationContents = Union[str, list[ConversationTurn]]


class ProviderError(Exception):
    """Base exception for provider failures."""


class RateLimitedError(ProviderError):
    """The provider rejected the call because of rate limiting or quota."""


class GenerationError(ProviderError):
    """Any non-rate-limit failure while starting a generation."""


_RATE_LIMIT_MARKERS = ("429", "resource_exhausted", "rate limit", "rate_limit")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify an exception as rate-limit class.

    Providers raise ``RateLimitedError`` for their SDK's rate-limit errors;
    anything else is classified by its message.
    """
    if isinstance(exc, RateLimitedError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for streaming LLM calls."""

    name: str

    async def open_stream(
        self,
        model: str,
        contents: GenerationContents,
        max_tokens: int = 2048,
        temperature: float = 0.4,
    ) -> AsyncIterator[str]:
        """Start a generation and return its text fragments.

        Errors that prevent the generation from starting (rate limits, bad
        credentials, unknown model) are raised here, not while iterating.
        """
        ...


def create_provider(provider_name: str, api_key: str = "") -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "anthropic", "openai", or "mock"
        api_key: API key for the provider.

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "anthropic":
        from ringchat.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key)
    elif provider_name == "openai":
        from ringchat.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key)
    elif provider_name == "mock":
        from ringchat.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
