"""Natural-language date range extraction.

Layered heuristics resolve most phrasings ("last night", "past 3 weeks",
"2025-01-01 to 2025-01-31"). Queries that look date-related but match no
heuristic are handed to the model with a strict-JSON prompt. Anything that
fails falls back to the trailing seven days.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date, timedelta
from typing import TYPE_CHECKING

from ringchat.core.llm.response import extract_json_object
from ringchat.domains.wearable.domain_logic.models import DateRange

if TYPE_CHECKING:
    from ringchat.core.llm.client import GenerationClient

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7

_ISO_DATE = r"\d{4}-\d{2}-\d{2}"
_RANGE = re.compile(rf"({_ISO_DATE})\s*(to|-)\s*({_ISO_DATE})")
_SINGLE_DATE = re.compile(rf"\b({_ISO_DATE})\b")
_TODAY = re.compile(r"\btoday\b")
_YESTERDAY = re.compile(r"\b(yesterday|last night)\b")
_RELATIVE = re.compile(r"\b(last|past|previous)\s+(\d+)\s+(days?|weeks?|months?|years?)\b")
_THIS_OR_LAST_WEEK = re.compile(r"\b(this|last)\s+week\b")
_THIS_MONTH = re.compile(r"\bthis\s+month\b")
_LAST_MONTH = re.compile(r"\blast\s+month\b")
_THIS_YEAR = re.compile(r"\bthis\s+year\b")
_LAST_YEAR = re.compile(r"\blast\s+year\b")
_BARE_YEAR = re.compile(r"\b(20\d{2})\b")

# Approximate, not calendar-exact.
_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}

# Broader signals that a query refers to some period even though no heuristic
# above could resolve it. Only these queries are worth a model call.
DATE_REFERENCE_PATTERNS = [
    re.compile(
        r"\b(january|february|march|april|may|june|july|august|september|october"
        r"|november|december)\s+\d{4}\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(last|past|previous)\s+(\d+)\s+(days?|weeks?|months?|years?)\b", re.IGNORECASE),
    re.compile(r"\b(this|last|past|previous)\s+(week|month|year)\b", re.IGNORECASE),
    re.compile(rf"\b{_ISO_DATE}\b"),
    re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\s+\d{1,2}", re.IGNORECASE),
    re.compile(r"\b20\d{2}\b"),
    re.compile(r"\b(year|yr)\b", re.IGNORECASE),
]


def format_date(value: date) -> str:
    return value.isoformat()


def _is_iso_date(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def default_range(today: date) -> DateRange:
    """Trailing seven days ending today, marked as not explicitly requested."""
    return DateRange(
        start_date=format_date(today - timedelta(days=DEFAULT_WINDOW_DAYS)),
        end_date=format_date(today),
        uses_custom_range=False,
    )


def normalize_range(start_date: str, end_date: str, today: date) -> DateRange:
    """Swap an inverted range and clamp it so nothing lies after today."""
    today_str = format_date(today)
    if start_date > end_date:
        start_date, end_date = end_date, start_date
    if end_date > today_str:
        end_date = today_str
    if start_date > end_date:
        start_date = end_date
    return DateRange(start_date=start_date, end_date=end_date, uses_custom_range=True)


def _custom(start: date, end: date) -> DateRange:
    return DateRange(start_date=format_date(start), end_date=format_date(end))


def parse_date_range(query: str, today: date) -> DateRange | None:
    """Resolve a date range with heuristics only; None when nothing matches.

    The returned range is not normalized. ISO-shaped dates that do not exist
    on the calendar ("2025-02-30") are skipped.
    """
    q = query.lower()

    for match in _RANGE.finditer(q):
        if _is_iso_date(match.group(1)) and _is_iso_date(match.group(3)):
            return DateRange(start_date=match.group(1), end_date=match.group(3))

    for match in _SINGLE_DATE.finditer(q):
        if _is_iso_date(match.group(1)):
            return DateRange(start_date=match.group(1), end_date=match.group(1))

    # Only impossible dates remain; keep their year out of the bare-year rule.
    q = _SINGLE_DATE.sub(" ", q)

    if _TODAY.search(q):
        return _custom(today, today)

    if _YESTERDAY.search(q):
        yesterday = today - timedelta(days=1)
        return _custom(yesterday, yesterday)

    match = _RELATIVE.search(q)
    if match:
        amount = int(match.group(2))
        unit = match.group(3).rstrip("s")
        return _custom(today - timedelta(days=amount * _UNIT_DAYS[unit]), today)

    if _THIS_OR_LAST_WEEK.search(q):
        return _custom(today - timedelta(days=7), today)

    if _THIS_MONTH.search(q):
        return _custom(today.replace(day=1), today)

    if _LAST_MONTH.search(q):
        last_of_previous = today.replace(day=1) - timedelta(days=1)
        return _custom(last_of_previous.replace(day=1), last_of_previous)

    if _THIS_YEAR.search(q):
        return _custom(date(today.year, 1, 1), today)

    if _LAST_YEAR.search(q):
        return _custom(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))

    match = _BARE_YEAR.search(q)
    if match:
        year = int(match.group(1))
        return _custom(date(year, 1, 1), date(year, 12, 31))

    return None


def has_date_reference(query: str) -> bool:
    return any(pattern.search(query) for pattern in DATE_REFERENCE_PATTERNS)


def build_extraction_prompt(query: str, today: date) -> str:
    today_str = format_date(today)
    return f"""Extract the date range from this health data question. Today's date is {today_str}.

Question: "{query}"

Return ONLY a JSON object with startDate and endDate in YYYY-MM-DD format. No explanation.
Rules:
- "last night" or "yesterday": use yesterday's date for both
- "today": use today's date for both
- "last week": use 7 days ago to today
- "last month": use 30 days ago to today
- "year 2025" or "in 2025": use "2025-01-01" to "2025-12-31"
- "last year": use the full previous calendar year
- "last X days": use X days ago to today

Example response: {{"startDate": "2025-12-01", "endDate": "2025-12-31"}}"""


class DateRangeResolver:
    """Turns a free-text query into a concrete date range. Never raises."""

    def __init__(
        self,
        generation_client: GenerationClient | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._generation_client = generation_client
        self._today = today

    async def resolve(self, query: str, today: date | None = None) -> DateRange:
        today = today or self._today()

        parsed = parse_date_range(query, today)
        if parsed is not None:
            return normalize_range(parsed.start_date, parsed.end_date, today)

        if not has_date_reference(query) or self._generation_client is None:
            return default_range(today)

        try:
            extracted = await self._extract_with_model(query, today)
        except Exception:
            logger.warning("Date extraction failed, using default range", exc_info=True)
            return default_range(today)

        if extracted is None:
            logger.warning("Model returned no usable date range, using default range")
            return default_range(today)

        logger.info("Extracted date range: %s to %s", extracted.start_date, extracted.end_date)
        return extracted

    async def _extract_with_model(self, query: str, today: date) -> DateRange | None:
        if self._generation_client is None:
            return None
        text = await self._generation_client.generate_text(build_extraction_prompt(query, today))
        parsed = extract_json_object(text)
        if parsed is None:
            return None
        start_date = parsed.get("startDate")
        end_date = parsed.get("endDate")
        if not (_is_iso_date(start_date) and _is_iso_date(end_date)):
            return None
        return normalize_range(start_date, end_date, today)
