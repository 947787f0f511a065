"""Keyword-based detection of which data categories a query is about."""

from __future__ import annotations

from ringchat.domains.wearable.domain_logic.models import DataTypeFlags

SLEEP_KEYWORDS = ("sleep", "rest", "night", "bed", "rem", "deep", "light", "awake")
ACTIVITY_KEYWORDS = ("activity", "step", "active", "exercise", "workout", "calories", "move")
READINESS_KEYWORDS = ("readiness", "recovery", "ready", "stress", "strain")
HEART_RATE_KEYWORDS = ("heart", "hr", "bpm", "pulse")

# Phrases that would otherwise leak into another category ("resting" contains
# "rest"). They count for heart rate and are removed before the other
# categories are checked.
HEART_RATE_PHRASES = ("resting heart rate", "resting heart", "resting hr", "resting pulse")


def _mentions(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def classify(query: str) -> DataTypeFlags:
    """Detect the data categories a query concerns.

    Matching is case-insensitive and by substring, so "overnight" counts as
    sleep and "workouts" as activity.

    When no category keyword is present, sleep, activity and readiness are
    included and heart rate is not: heart-rate series are by far the largest
    payload and are only fetched on explicit request.
    """
    text = query.lower()

    wants_heart_rate = False
    for phrase in HEART_RATE_PHRASES:
        if phrase in text:
            wants_heart_rate = True
            text = text.replace(phrase, " ")

    wants_heart_rate = wants_heart_rate or _mentions(text, HEART_RATE_KEYWORDS)
    wants_sleep = _mentions(text, SLEEP_KEYWORDS)
    wants_activity = _mentions(text, ACTIVITY_KEYWORDS)
    wants_readiness = _mentions(text, READINESS_KEYWORDS)

    no_specific_type = not (wants_sleep or wants_activity or wants_readiness or wants_heart_rate)

    return DataTypeFlags(
        sleep=wants_sleep or no_specific_type,
        activity=wants_activity or no_specific_type,
        readiness=wants_readiness or no_specific_type,
        heart_rate=wants_heart_rate,
    )
