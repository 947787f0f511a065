"""Wearable query models: date ranges, relevance flags, heart-rate results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class DateRange:
    """Inclusive calendar date range (ISO ``YYYY-MM-DD`` strings).

    ``uses_custom_range`` is False only for the trailing-7-day default, which
    callers treat as "no explicit range asked for".
    """

    start_date: str
    end_date: str
    uses_custom_range: bool = True


@dataclass
class DataTypeFlags:
    """Which data categories a query concerns."""

    sleep: bool = False
    activity: bool = False
    readiness: bool = False
    heart_rate: bool = False

    def any(self) -> bool:
        return self.sleep or self.activity or self.readiness or self.heart_rate

    def covers(self, needed: DataTypeFlags) -> bool:
        """True if every flag set in ``needed`` is also set here."""
        if needed.sleep and not self.sleep:
            return False
        if needed.activity and not self.activity:
            return False
        if needed.readiness and not self.readiness:
            return False
        if needed.heart_rate and not self.heart_rate:
            return False
        return True

    def missing(self, needed: DataTypeFlags) -> DataTypeFlags:
        """Flags set in ``needed`` but not here."""
        return DataTypeFlags(
            sleep=needed.sleep and not self.sleep,
            activity=needed.activity and not self.activity,
            readiness=needed.readiness and not self.readiness,
            heart_rate=needed.heart_rate and not self.heart_rate,
        )

    def union(self, other: DataTypeFlags) -> DataTypeFlags:
        return DataTypeFlags(
            sleep=self.sleep or other.sleep,
            activity=self.activity or other.activity,
            readiness=self.readiness or other.readiness,
            heart_rate=self.heart_rate or other.heart_rate,
        )


@dataclass
class DailyHeartRateStats:
    """Aggregated heart rate for one calendar day."""

    min: int
    max: int
    avg: int
    readings: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "avg": self.avg,
            "readings": list(self.readings),
        }


@dataclass
class HeartRateResult:
    """Raw heart-rate samples plus per-day aggregates derived from them."""

    readings: list[dict[str, Any]] = field(default_factory=list)
    daily_stats: dict[str, DailyHeartRateStats] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "readings": list(self.readings),
            "dailyStats": {day: s.to_dict() for day, s in self.daily_stats.items()},
        }


@dataclass
class WearableData:
    """Fetched data for every category; unrequested categories stay empty."""

    sleep: list[dict[str, Any]] = field(default_factory=list)
    activity: list[dict[str, Any]] = field(default_factory=list)
    readiness: list[dict[str, Any]] = field(default_factory=list)
    heart_rate: HeartRateResult = field(default_factory=HeartRateResult)

    def is_empty(self) -> bool:
        return not (
            self.sleep or self.activity or self.readiness or self.heart_rate.readings
        )

    def with_categories(self, other: WearableData, types: DataTypeFlags) -> WearableData:
        """Copy of this data with the categories flagged in ``types`` taken from ``other``."""
        return WearableData(
            sleep=other.sleep if types.sleep else self.sleep,
            activity=other.activity if types.activity else self.activity,
            readiness=other.readiness if types.readiness else self.readiness,
            heart_rate=other.heart_rate if types.heart_rate else self.heart_rate,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sleep": list(self.sleep),
            "activity": list(self.activity),
            "readiness": list(self.readiness),
            "heartRate": self.heart_rate.to_dict(),
        }


@dataclass
class HistoryMessage:
    """One prior message in the chat, as sent by the client."""

    role: Literal["user", "assistant"]
    content: str
