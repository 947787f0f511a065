"""OpenAI GPT provider."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import openai

from ringchat.core.llm.provider import GenerationContents, GenerationError, RateLimitedError
from ringchat.core.llm.response import openai_chunk_text

logger = logging.getLogger(__name__)


def _to_messages(contents: GenerationContents) -> list[dict[str, Any]]:
    if isinstance(contents, str):
        return [{"role": "user", "content": contents}]
    return [
        {"role": "assistant" if turn.role == "model" else "user", "content": turn.text}
        for turn in contents
    ]


class OpenAIProvider:
    """OpenAI provider using streamed chat completions."""

    name = "openai"

    def __init__(self, api_key: str) -> None:
        self.client = openai.AsyncOpenAI(api_key=api_key)

    async def open_stream(
        self,
        model: str,
        contents: GenerationContents,
        max_tokens: int = 2048,
        temperature: float = 0.4,
    ) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=_to_messages(contents),
                stream=True,
            )
        except openai.RateLimitError as exc:
            raise RateLimitedError(f"{model}: {exc}") from exc
        except openai.OpenAIError as exc:
            raise GenerationError(f"{model}: {exc}") from exc
        return self._iter_text(stream, model)

    async def _iter_text(self, stream: Any, model: str) -> AsyncIterator[str]:
        async for chunk in stream:
            try:
                text = openai_chunk_text(chunk)
            except ValueError as exc:
                logger.warning("Skipping malformed stream chunk from %s: %s", model, exc)
                continue
            if text:
                yield text
