"""Mock Oura data generators for development and testing.

The numbers describe a reasonably healthy adult: sleep scores in the 70s-80s,
7-9k steps, resting heart rate in the high 50s. Every value is derived from
the calendar day alone, so the same range always yields the same data.
"""

from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Any


def _days(start_date: str, end_date: str) -> list[date]:
    start = date.fromisoformat(start_date)
    end = date.fromisoformat(end_date)
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def _rng(day: date, salt: int) -> random.Random:
    return random.Random(day.toordinal() * 31 + salt)


def get_mock_sleep(start_date: str, end_date: str) -> list[dict[str, Any]]:
    """Daily sleep records shaped like the merged Oura sleep payload."""
    records = []
    for day in _days(start_date, end_date):
        rng = _rng(day, 1)
        deep = rng.randint(50, 100) * 60
        rem = rng.randint(80, 120) * 60
        light = rng.randint(200, 260) * 60
        awake = rng.randint(15, 45) * 60
        bedtime = day - timedelta(days=1)
        records.append(
            {
                "id": f"mock-sleep-{day.isoformat()}",
                "day": day.isoformat(),
                "score": rng.randint(68, 88),
                "contributors": {
                    "deep_sleep": rng.randint(60, 95),
                    "efficiency": rng.randint(75, 95),
                    "latency": rng.randint(60, 95),
                    "rem_sleep": rng.randint(60, 95),
                    "restfulness": rng.randint(55, 90),
                    "timing": rng.randint(60, 95),
                    "total_sleep": rng.randint(65, 95),
                },
                "bedtime_start": f"{bedtime.isoformat()}T23:{rng.randint(0, 45):02d}:00+00:00",
                "bedtime_end": f"{day.isoformat()}T07:{rng.randint(0, 45):02d}:00+00:00",
                "total_sleep_duration": deep + rem + light,
                "time_in_bed": deep + rem + light + awake,
                "awake_time": awake,
                "rem_sleep_duration": rem,
                "deep_sleep_duration": deep,
                "light_sleep_duration": light,
                "restless_periods": rng.randint(150, 300),
                "average_heart_rate": round(rng.uniform(54.0, 62.0), 1),
                "lowest_heart_rate": rng.randint(48, 55),
                "average_hrv": rng.randint(35, 60),
                "efficiency": rng.randint(82, 95),
            }
        )
    return records


def get_mock_activity(start_date: str, end_date: str) -> list[dict[str, Any]]:
    """Daily activity records, with a workout every third day."""
    records = []
    for day in _days(start_date, end_date):
        rng = _rng(day, 2)
        steps = rng.randint(5500, 11000)
        active_calories = rng.randint(250, 650)
        workouts = []
        if day.toordinal() % 3 == 0:
            workouts.append(
                {
                    "activity": rng.choice(["walking", "running", "cycling"]),
                    "calories": rng.randint(150, 450),
                    "distance": rng.randint(2000, 9000),
                    "start_datetime": f"{day.isoformat()}T18:00:00+00:00",
                    "end_datetime": f"{day.isoformat()}T18:45:00+00:00",
                    "intensity": rng.choice(["easy", "moderate", "hard"]),
                }
            )
        records.append(
            {
                "id": f"mock-activity-{day.isoformat()}",
                "day": day.isoformat(),
                "score": rng.randint(65, 92),
                "active_calories": active_calories,
                "steps": steps,
                "total_calories": 1900 + active_calories,
                "equivalent_walking_distance": int(steps * 0.78),
                "high_activity_time": rng.randint(0, 30) * 60,
                "medium_activity_time": rng.randint(20, 60) * 60,
                "low_activity_time": rng.randint(150, 300) * 60,
                "sedentary_time": rng.randint(420, 600) * 60,
                "resting_time": rng.randint(420, 540) * 60,
                "target_calories": 450,
                "contributors": {
                    "meet_daily_targets": rng.randint(50, 95),
                    "move_every_hour": rng.randint(70, 100),
                    "recovery_time": rng.randint(70, 100),
                    "stay_active": rng.randint(55, 90),
                    "training_frequency": rng.randint(60, 100),
                    "training_volume": rng.randint(60, 100),
                },
                "met": {"average": round(rng.uniform(1.4, 1.9), 2)},
                "workouts": workouts,
            }
        )
    return records


def get_mock_readiness(start_date: str, end_date: str) -> list[dict[str, Any]]:
    records = []
    for day in _days(start_date, end_date):
        rng = _rng(day, 3)
        records.append(
            {
                "id": f"mock-readiness-{day.isoformat()}",
                "day": day.isoformat(),
                "score": rng.randint(65, 90),
                "temperature_deviation": round(rng.uniform(-0.4, 0.4), 2),
                "temperature_trend_deviation": round(rng.uniform(-0.3, 0.3), 2),
                "contributors": {
                    "activity_balance": rng.randint(60, 95),
                    "body_temperature": rng.randint(80, 100),
                    "hrv_balance": rng.randint(55, 95),
                    "previous_day_activity": rng.randint(60, 95),
                    "previous_night": rng.randint(60, 95),
                    "recovery_index": rng.randint(60, 100),
                    "resting_heart_rate": rng.randint(70, 100),
                    "sleep_balance": rng.randint(60, 95),
                },
            }
        )
    return records


def get_mock_heart_rate_readings(start_date: str, end_date: str) -> list[dict[str, Any]]:
    """Hourly heart-rate samples, lower overnight and higher in the evening."""
    readings = []
    for day in _days(start_date, end_date):
        rng = _rng(day, 4)
        for hour in range(24):
            if hour < 7:
                bpm, source = rng.randint(50, 60), "rest"
            elif hour >= 17 and hour < 20:
                bpm, source = rng.randint(75, 120), "workout"
            else:
                bpm, source = rng.randint(62, 85), "awake"
            readings.append(
                {
                    "bpm": bpm,
                    "source": source,
                    "timestamp": f"{day.isoformat()}T{hour:02d}:00:00+00:00",
                }
            )
    return readings
