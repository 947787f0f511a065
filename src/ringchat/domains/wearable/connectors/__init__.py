"""Wearable data connectors: abstraction layer for wearable data retrieval."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ringchat.domains.wearable.domain_logic.models import HeartRateResult


class WearableFetchError(Exception):
    """A category could not be fetched from the wearable data source."""


@runtime_checkable
class WearableDataProvider(Protocol):
    """Abstract interface for wearable data retrieval.

    All date arguments are inclusive ISO dates. Day-based categories return
    one dict per day with a ``day`` field; fetch failures raise
    ``WearableFetchError``.
    """

    async def get_sleep(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        """Daily sleep scores merged with the night's main sleep period."""
        ...

    async def get_activity(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        """Daily activity summaries with that day's workouts."""
        ...

    async def get_readiness(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        """Daily readiness scores and contributors."""
        ...

    async def get_heart_rate(
        self, session_id: str, start_date: str, end_date: str
    ) -> HeartRateResult:
        """Heart-rate samples with per-day aggregates."""
        ...

    async def check_connection(self, session_id: str) -> bool:
        """Whether the session's credentials currently work against the source."""
        ...

    def is_connected(self, session_id: str | None) -> bool:
        """Whether the session has credentials for the source at all."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active data source: 'oura' or 'mock'."""
        ...
