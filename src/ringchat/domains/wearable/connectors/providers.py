"""Concrete WearableDataProvider implementations other than Oura."""

from __future__ import annotations

from typing import Any

from ringchat.domains.wearable.connectors.mock_data import (
    get_mock_activity,
    get_mock_heart_rate_readings,
    get_mock_readiness,
    get_mock_sleep,
)
from ringchat.domains.wearable.domain_logic.heart_rate import build_heart_rate_result
from ringchat.domains.wearable.domain_logic.models import HeartRateResult


class MockWearableProvider:
    """Uses mock data generators. Always available, every session is connected."""

    async def get_sleep(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        return get_mock_sleep(start_date, end_date)

    async def get_activity(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        return get_mock_activity(start_date, end_date)

    async def get_readiness(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        return get_mock_readiness(start_date, end_date)

    async def get_heart_rate(
        self, session_id: str, start_date: str, end_date: str
    ) -> HeartRateResult:
        return build_heart_rate_result(get_mock_heart_rate_readings(start_date, end_date))

    async def check_connection(self, session_id: str) -> bool:
        return True

    def is_connected(self, session_id: str | None) -> bool:
        return True

    @property
    def data_source(self) -> str:
        return "mock"
