"""Oura ring data provider: reads the Oura API v2 user collection.

Each category is shaped into one dict per day so that every downstream
consumer (cache filtering, prompts, response payloads) can rely on a ``day``
field.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ringchat.core.session.store import SessionStore
from ringchat.domains.wearable.connectors import WearableFetchError
from ringchat.domains.wearable.connectors.oauth import TokenManager
from ringchat.domains.wearable.domain_logic.heart_rate import build_heart_rate_result
from ringchat.domains.wearable.domain_logic.models import HeartRateResult

logger = logging.getLogger(__name__)

OURA_API_BASE = "https://api.ouraring.com/v2/usercollection"

_SLEEP_PERIOD_FIELDS = (
    "bedtime_start",
    "bedtime_end",
    "total_sleep_duration",
    "time_in_bed",
    "awake_time",
    "rem_sleep_duration",
    "deep_sleep_duration",
    "light_sleep_duration",
    "restless_periods",
    "average_heart_rate",
    "lowest_heart_rate",
    "average_hrv",
    "efficiency",
)

_ACTIVITY_FIELDS = (
    "score",
    "active_calories",
    "steps",
    "total_calories",
    "equivalent_walking_distance",
    "high_activity_time",
    "medium_activity_time",
    "low_activity_time",
    "sedentary_time",
    "resting_time",
    "target_calories",
    "contributors",
    "met",
)

_WORKOUT_FIELDS = (
    "activity",
    "calories",
    "distance",
    "start_datetime",
    "end_datetime",
    "intensity",
)


def _main_sleep_period(periods: list[dict[str, Any]]) -> dict[str, Any]:
    """The night's main period: the ``long_sleep`` one, else the first."""
    for period in periods:
        if period.get("type") == "long_sleep":
            return period
    return periods[0] if periods else {}


def merge_sleep(
    daily_sleep: list[dict[str, Any]], sleep_periods: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Combine daily sleep scores with the details of that day's main period."""
    merged = []
    for day in daily_sleep:
        periods = [p for p in sleep_periods if p.get("day") == day.get("day")]
        main = _main_sleep_period(periods)
        record = {
            "id": day.get("id"),
            "day": day.get("day"),
            "score": day.get("score"),
            "contributors": day.get("contributors"),
        }
        for name in _SLEEP_PERIOD_FIELDS:
            record[name] = main.get(name)
        merged.append(record)
    return merged


def merge_activity(
    daily_activity: list[dict[str, Any]], workouts: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Attach each day's workouts to its daily activity summary."""
    merged = []
    for day in daily_activity:
        record: dict[str, Any] = {"id": day.get("id"), "day": day.get("day")}
        for name in _ACTIVITY_FIELDS:
            record[name] = day.get(name)
        record["workouts"] = [
            {name: w.get(name) for name in _WORKOUT_FIELDS}
            for w in workouts
            if w.get("day") == day.get("day")
        ]
        merged.append(record)
    return merged


def shape_readiness(daily_readiness: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "id": day.get("id"),
            "day": day.get("day"),
            "score": day.get("score"),
            "temperature_deviation": day.get("temperature_deviation"),
            "temperature_trend_deviation": day.get("temperature_trend_deviation"),
            "contributors": day.get("contributors"),
        }
        for day in daily_readiness
    ]


class OuraProvider:
    """WearableDataProvider backed by the Oura API.

    Usage::

        provider = OuraProvider(token_manager, session_store)
        if provider.is_connected(session_id):
            sleep = await provider.get_sleep(session_id, "2026-01-01", "2026-01-07")
    """

    def __init__(
        self,
        token_manager: TokenManager,
        session_store: SessionStore,
        http_client: httpx.AsyncClient | None = None,
        api_base: str = OURA_API_BASE,
        timeout: float = 30.0,
    ) -> None:
        self._tokens = token_manager
        self._store = session_store
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._api_base = api_base.rstrip("/")

    @property
    def data_source(self) -> str:
        return "oura"

    def is_connected(self, session_id: str | None) -> bool:
        return self._store.is_connected(session_id)

    async def check_connection(self, session_id: str) -> bool:
        try:
            await self._get(session_id, "personal_info")
        except WearableFetchError:
            logger.warning("Oura connection check failed", exc_info=True)
            return False
        return True

    async def get_sleep(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        params = {"start_date": start_date, "end_date": end_date}
        daily, periods = await asyncio.gather(
            self._get_data(session_id, "daily_sleep", params),
            self._get_data(session_id, "sleep", params),
        )
        return merge_sleep(daily, periods)

    async def get_activity(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        params = {"start_date": start_date, "end_date": end_date}
        daily = await self._get_data(session_id, "daily_activity", params)
        try:
            workouts = await self._get_data(session_id, "workout", params)
        except WearableFetchError:
            # Not every account has workout data.
            logger.info("No workout data for %s to %s", start_date, end_date)
            workouts = []
        return merge_activity(daily, workouts)

    async def get_readiness(
        self, session_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        params = {"start_date": start_date, "end_date": end_date}
        return shape_readiness(await self._get_data(session_id, "daily_readiness", params))

    async def get_heart_rate(
        self, session_id: str, start_date: str, end_date: str
    ) -> HeartRateResult:
        params = {
            "start_datetime": f"{start_date}T00:00:00Z",
            "end_datetime": f"{end_date}T23:59:59Z",
        }
        readings = await self._get_data(session_id, "heartrate", params)
        return build_heart_rate_result(readings)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_data(
        self, session_id: str, path: str, params: dict[str, str]
    ) -> list[dict[str, Any]]:
        payload = await self._get(session_id, path, params)
        data = payload.get("data")
        return data if isinstance(data, list) else []

    async def _get(
        self, session_id: str, path: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        token = await self._tokens.ensure_valid_access_token(session_id)
        if token is None:
            raise WearableFetchError("No valid Oura access token for session")

        url = f"{self._api_base}/{path}"
        logger.debug("GET %s %s", url, params or {})
        try:
            response = await self._client.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise WearableFetchError(f"Oura request to {path} failed: {exc}") from exc
        except ValueError as exc:
            raise WearableFetchError(f"Invalid JSON from Oura {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise WearableFetchError(f"Unexpected payload from Oura {path}")
        return payload
