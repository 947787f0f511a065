"""Generation client: streaming calls with model fallback and rate-limit retry."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from ringchat.core.llm.provider import (
    GenerationContents,
    GenerationError,
    LLMProvider,
    is_rate_limit_error,
)

logger = logging.getLogger(__name__)


class GenerationStream:
    """Text fragments from one generation, tagged with the model that produced them.

    Forward-only: the underlying stream can be iterated exactly once.
    """

    def __init__(self, model: str, chunks: AsyncIterator[str]) -> None:
        self.model = model
        self._chunks = chunks
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("Generation stream has already been consumed")
        self._consumed = True
        return self._chunks.__aiter__()


@dataclass
class FallbackState:
    """Position in the model fallback list.

    ``attempt`` counts attempts already made on the current model.
    """

    model_index: int = 0
    attempt: int = 0


class ModelFallbackPolicy:
    """Decides what to do after a failed attempt.

    Rate-limited attempts are retried on the same model until ``max_retries``
    attempts have been made, then the next model is tried with its own attempts.
    Any other error is final.
    """

    RETRY = "retry"
    FALLBACK = "fallback"
    ABORT = "abort"

    def __init__(
        self,
        models: list[str],
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_jitter: float = 1.0,
    ) -> None:
        if not models:
            raise ValueError("At least one model is required")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.models = list(models)
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_jitter = max_jitter

    def next_action(self, state: FallbackState, exc: BaseException) -> str:
        if not is_rate_limit_error(exc):
            return self.ABORT
        if state.attempt < self.max_retries:
            return self.RETRY
        return self.FALLBACK

    def backoff_delay(self, attempt: int, jitter: float) -> float:
        """Delay in seconds before retry number ``attempt`` (0-based)."""
        return (2 ** attempt) * self.base_delay + jitter * self.max_jitter


class GenerationClient:
    """Opens a streaming generation, walking the fallback list on rate limits.

    Usage::

        client = GenerationClient(provider, ["primary-model", "fallback-model"])
        stream = await client.generate_stream("Summarize my week")
        async for text in stream:
            ...
    """

    def __init__(
        self,
        provider: LLMProvider,
        models: list[str],
        *,
        max_retries: int = 2,
        max_tokens: int = 2048,
        temperature: float = 0.4,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        self.provider = provider
        self.policy = ModelFallbackPolicy(models, max_retries=max_retries)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._sleep = sleep
        self._jitter = jitter

    @property
    def provider_name(self) -> str:
        return getattr(self.provider, "name", "unknown")

    @property
    def models(self) -> list[str]:
        return self.policy.models

    async def generate_stream(self, contents: GenerationContents) -> GenerationStream:
        """Start a streaming generation on the first model that accepts it.

        Raises:
            GenerationError: a non-rate-limit failure, raised immediately.
            RateLimitedError: the last rate-limit error, once every model
                is exhausted.
        """
        state = FallbackState()
        last_error: BaseException | None = None

        while state.model_index < len(self.policy.models):
            model = self.policy.models[state.model_index]
            try:
                chunks = await self.provider.open_stream(
                    model,
                    contents,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )
            except Exception as exc:
                last_error = exc
                state.attempt += 1
                action = self.policy.next_action(state, exc)

                if action == ModelFallbackPolicy.ABORT:
                    raise
                if action == ModelFallbackPolicy.RETRY:
                    delay = self.policy.backoff_delay(state.attempt - 1, self._jitter())
                    logger.info(
                        "Rate limited on %s, retrying in %.0fms (attempt %d/%d)",
                        model,
                        delay * 1000,
                        state.attempt + 1,
                        self.policy.max_retries,
                    )
                    await self._sleep(delay)
                    continue

                logger.warning("Rate limited on %s, trying fallback model", model)
                state.model_index += 1
                state.attempt = 0
                continue

            logger.info("Using model: %s", model)
            return GenerationStream(model, chunks)

        if last_error is not None:
            raise last_error
        raise GenerationError("All models failed")

    async def generate_text(self, contents: GenerationContents) -> str:
        """Run a generation to completion and return the concatenated text."""
        stream = await self.generate_stream(contents)
        parts: list[str] = []
        async for text in stream:
            parts.append(text)
        return "".join(parts)
