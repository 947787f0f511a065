"""Heart-rate aggregation: raw samples to per-day min/max/avg."""

from __future__ import annotations

import math
from typing import Any

from ringchat.domains.wearable.domain_logic.models import (
    DailyHeartRateStats,
    HeartRateResult,
)


def reading_day(reading: dict[str, Any]) -> str | None:
    """Calendar day (``YYYY-MM-DD``) of a reading's ISO timestamp."""
    timestamp = reading.get("timestamp")
    if not isinstance(timestamp, str) or not timestamp:
        return None
    return timestamp.split("T")[0]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_daily_stats(
    readings: list[dict[str, Any]],
) -> dict[str, DailyHeartRateStats]:
    """Group readings by day and compute min/max/avg bpm for each day.

    Readings without a timestamp or bpm are ignored.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for reading in readings:
        day = reading_day(reading)
        if day is None or not isinstance(reading.get("bpm"), (int, float)):
            continue
        grouped.setdefault(day, []).append(reading)

    stats: dict[str, DailyHeartRateStats] = {}
    for day, day_readings in grouped.items():
        bpms = [r["bpm"] for r in day_readings]
        stats[day] = DailyHeartRateStats(
            min=min(bpms),
            max=max(bpms),
            avg=_round_half_up(sum(bpms) / len(bpms)),
            readings=day_readings,
        )
    return stats


def build_heart_rate_result(readings: list[dict[str, Any]]) -> HeartRateResult:
    """Wrap raw readings with their derived daily stats."""
    return HeartRateResult(readings=list(readings), daily_stats=compute_daily_stats(readings))


def summarize_daily_stats(result: HeartRateResult) -> list[dict[str, Any]]:
    """Per-day ``{day, min, max, avg}`` rows, without the raw samples.

    This is the only heart-rate shape that goes into prompts and response
    payloads; raw per-sample series are too large.
    """
    return [
        {
            "day": day,
            "min": stats.min,
            "max": stats.max,
            "avg": stats.avg,
        }
        for day, stats in sorted(result.daily_stats.items())
    ]
