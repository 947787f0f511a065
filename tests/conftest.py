"""Shared test fixtures for ringchat tests."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("DATA_PROVIDER", "mock")
    monkeypatch.setenv("OURA_CLIENT_ID", "")
    monkeypatch.setenv("OURA_CLIENT_SECRET", "")
    monkeypatch.setenv("OURA_PERSONAL_ACCESS_TOKEN", "")
    monkeypatch.setenv("SESSION_ENCRYPTION_KEY", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from ringchat.core.cache.response_cache import SessionResponseCache  # noqa: E402
from ringchat.core.llm.client import GenerationClient  # noqa: E402
from ringchat.core.llm.providers.mock import MockProvider  # noqa: E402
from ringchat.domains.wearable.connectors import WearableFetchError  # noqa: E402
from ringchat.domains.wearable.connectors.providers import MockWearableProvider  # noqa: E402
from ringchat.domains.wearable.domain_logic.date_range import DateRangeResolver  # noqa: E402
from ringchat.domains.wearable.domain_logic.models import HeartRateResult  # noqa: E402
from ringchat.domains.wearable.domain_logic.query_orchestrator import (  # noqa: E402
    QueryOrchestrator,
)

TODAY = date(2025, 6, 15)


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_delay: float) -> None:
    return None


class RecordingWearableProvider:
    """Wearable provider that records every fetch.

    Serves generated mock data unless ``empty`` is set; categories listed in
    ``failing`` raise WearableFetchError.
    """

    def __init__(
        self,
        connected: bool = True,
        empty: bool = False,
        failing: tuple[str, ...] = (),
    ) -> None:
        self.connected = connected
        self.empty = empty
        self.failing = set(failing)
        self.calls: list[tuple[str, str, str]] = []
        self._mock = MockWearableProvider()

    async def _fetch(self, category: str, start: str, end: str, fetch) -> Any:
        self.calls.append((category, start, end))
        if category in self.failing:
            raise WearableFetchError(f"{category} unavailable")
        if self.empty:
            return HeartRateResult() if category == "heart_rate" else []
        return await fetch("s", start, end)

    async def get_sleep(self, session_id, start_date, end_date):
        return await self._fetch("sleep", start_date, end_date, self._mock.get_sleep)

    async def get_activity(self, session_id, start_date, end_date):
        return await self._fetch("activity", start_date, end_date, self._mock.get_activity)

    async def get_readiness(self, session_id, start_date, end_date):
        return await self._fetch("readiness", start_date, end_date, self._mock.get_readiness)

    async def get_heart_rate(self, session_id, start_date, end_date):
        return await self._fetch("heart_rate", start_date, end_date, self._mock.get_heart_rate)

    async def check_connection(self, session_id):
        return self.connected

    def is_connected(self, session_id):
        return self.connected

    @property
    def data_source(self):
        return "recording"

    def categories_fetched(self) -> list[str]:
        return [category for category, _, _ in self.calls]


async def collect(events) -> list[dict[str, Any]]:
    return [event async for event in events]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def llm_provider() -> MockProvider:
    return MockProvider(chunks=["Your sleep ", "looks good."])


@pytest.fixture
def generation_client(llm_provider: MockProvider) -> GenerationClient:
    return GenerationClient(
        llm_provider, ["primary", "fallback"], sleep=no_sleep, jitter=lambda: 0.0
    )


@pytest.fixture
def wearable_provider() -> RecordingWearableProvider:
    return RecordingWearableProvider()


@pytest.fixture
def response_cache(clock: FakeClock) -> SessionResponseCache:
    return SessionResponseCache(clock=clock)


@pytest.fixture
def orchestrator(
    wearable_provider: RecordingWearableProvider,
    generation_client: GenerationClient,
    response_cache: SessionResponseCache,
) -> QueryOrchestrator:
    resolver = DateRangeResolver(generation_client, today=lambda: TODAY)
    return QueryOrchestrator(
        wearable_provider,
        generation_client,
        response_cache,
        date_resolver=resolver,
    )


@pytest.fixture
def token_cipher():
    """Create a TokenCipher with a fresh key."""
    from ringchat.core.session.encryption import TokenCipher

    return TokenCipher(TokenCipher.generate_key())
