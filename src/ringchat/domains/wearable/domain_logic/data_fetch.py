"""Concurrent retrieval of the wearable categories a query needs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date, timedelta
from typing import Any, TypeVar

from ringchat.domains.wearable.connectors import WearableDataProvider, WearableFetchError
from ringchat.domains.wearable.domain_logic.models import (
    DataTypeFlags,
    HeartRateResult,
    WearableData,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TODAY_METRICS_WINDOW_DAYS = 3


async def _tolerant(category: str, call: Awaitable[T], empty: T) -> T:
    try:
        return await call
    except WearableFetchError:
        logger.warning("Failed to fetch %s data; continuing without it", category, exc_info=True)
        return empty


async def _nothing(empty: T) -> T:
    return empty


async def fetch_wearable_data(
    provider: WearableDataProvider,
    session_id: str,
    start_date: str,
    end_date: str,
    types: DataTypeFlags,
) -> WearableData:
    """Fetch exactly the flagged categories for [start, end], concurrently.

    A category whose fetch fails is logged and left empty; the others are
    still returned.
    """
    sleep, activity, readiness, heart_rate = await asyncio.gather(
        _tolerant("sleep", provider.get_sleep(session_id, start_date, end_date), [])
        if types.sleep
        else _nothing([]),
        _tolerant("activity", provider.get_activity(session_id, start_date, end_date), [])
        if types.activity
        else _nothing([]),
        _tolerant("readiness", provider.get_readiness(session_id, start_date, end_date), [])
        if types.readiness
        else _nothing([]),
        _tolerant(
            "heart rate",
            provider.get_heart_rate(session_id, start_date, end_date),
            HeartRateResult(),
        )
        if types.heart_rate
        else _nothing(HeartRateResult()),
    )
    return WearableData(
        sleep=sleep,
        activity=activity,
        readiness=readiness,
        heart_rate=heart_rate,
    )


def _latest(items: list[dict[str, Any]]) -> dict[str, Any] | None:
    dated = [item for item in items if item.get("day")]
    if not dated:
        return None
    return max(dated, key=lambda item: item["day"])


async def fetch_today_metrics(
    provider: WearableDataProvider,
    session_id: str,
    today: date | None = None,
) -> dict[str, Any]:
    """Most recent sleep, activity and readiness scores plus resting heart rate.

    Looks back a few days because the current day's records are often not
    synced yet.
    """
    today = today or date.today()
    start = (today - timedelta(days=TODAY_METRICS_WINDOW_DAYS)).isoformat()
    end = today.isoformat()

    data = await fetch_wearable_data(
        provider,
        session_id,
        start,
        end,
        DataTypeFlags(sleep=True, activity=True, readiness=True),
    )
    sleep = _latest(data.sleep)
    activity = _latest(data.activity)
    readiness = _latest(data.readiness)

    resting_hr = None
    if readiness and isinstance(readiness.get("contributors"), dict):
        resting_hr = readiness["contributors"].get("resting_heart_rate")

    return {
        "sleepScore": sleep.get("score") if sleep else None,
        "activityScore": activity.get("score") if activity else None,
        "readinessScore": readiness.get("score") if readiness else None,
        "restingHR": resting_hr,
    }
