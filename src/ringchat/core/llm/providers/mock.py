"""Mock LLM provider for testing."""

from __future__ import annotations

from collections.abc import AsyncIterator

from ringchat.core.llm.provider import GenerationContents


class MockProvider:
    """Mock provider for testing: streams canned chunks.

    ``failures`` is consumed one entry per ``open_stream`` call before any
    stream succeeds, which lets tests script rate limits and fallbacks.
    """

    name = "mock"

    def __init__(
        self,
        chunks: list[str] | None = None,
        failures: list[BaseException] | None = None,
    ) -> None:
        self.chunks = chunks if chunks is not None else ["Mock ", "LLM ", "response."]
        self.failures = list(failures or [])
        self.calls: list[str] = []
        self.last_contents: GenerationContents | None = None

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def open_stream(
        self,
        model: str,
        contents: GenerationContents,
        max_tokens: int = 2048,
        temperature: float = 0.4,
    ) -> AsyncIterator[str]:
        self.calls.append(model)
        self.last_contents = contents
        if self.failures:
            raise self.failures.pop(0)
        return self._iter_chunks(list(self.chunks))

    async def _iter_chunks(self, chunks: list[str]) -> AsyncIterator[str]:
        for chunk in chunks:
            yield chunk
