"""Prompt assembly: data sections, grounding context and generation input."""

from __future__ import annotations

import json
from typing import Any

from ringchat.core.llm.provider import ConversationTurn, GenerationContents
from ringchat.core.llm.system_prompt import CONTEXT_ACKNOWLEDGEMENT, build_grounding_context
from ringchat.domains.wearable.domain_logic.heart_rate import summarize_daily_stats
from ringchat.domains.wearable.domain_logic.models import (
    DataTypeFlags,
    DateRange,
    HistoryMessage,
    WearableData,
)

DEFAULT_HISTORY_TURNS = 10

CONTEXT_INSTRUCTION = "Please use the above data context for this conversation."


def describe_date_range(date_range: DateRange) -> str:
    if date_range.uses_custom_range:
        return f"from {date_range.start_date} to {date_range.end_date}"
    return "from the last 7 days"


def no_data_message(date_range: DateRange) -> str:
    if date_range.uses_custom_range:
        return (
            "I couldn't find any data from your Oura ring for the period "
            f"{date_range.start_date} to {date_range.end_date}. "
            "Please make sure your ring was synced during that time."
        )
    return (
        "I couldn't find any recent data from your Oura ring. "
        "Please make sure your ring is synced and try again."
    )


def build_data_sections(data: WearableData, types: DataTypeFlags) -> str:
    """Labelled JSON blocks for each relevant category.

    Heart rate is included only as the per-day summary.
    """
    sections = ""
    if types.sleep:
        sections += f"\nSLEEP DATA:\n{json.dumps(data.sleep)}"
    if types.activity:
        sections += f"\nACTIVITY DATA:\n{json.dumps(data.activity)}"
    if types.readiness:
        sections += f"\nREADINESS DATA:\n{json.dumps(data.readiness)}"
    if types.heart_rate:
        summary = summarize_daily_stats(data.heart_rate)
        sections += (
            "\nHEART RATE DAILY SUMMARY (min/max/avg bpm per day):\n"
            f"{json.dumps(summary)}"
        )
    return sections


def build_stream_input(
    query: str,
    grounding_context: str,
    history: list[HistoryMessage] | None = None,
    max_history_turns: int = DEFAULT_HISTORY_TURNS,
) -> GenerationContents:
    """Generation input for a query.

    With prior history this is a turn list: the data context, a canned
    acknowledgement, the most recent history turns, then the question.
    Without history it is a single flat prompt.
    """
    if not history:
        return (
            f"{grounding_context}\n\nUSER QUESTION: {query}\n\n"
            "Please analyze the data and answer the user's question."
        )

    turns = [
        ConversationTurn(role="user", text=f"{grounding_context}\n\n{CONTEXT_INSTRUCTION}"),
        ConversationTurn(role="model", text=CONTEXT_ACKNOWLEDGEMENT),
    ]
    recent = history[-max_history_turns:] if max_history_turns > 0 else []
    for message in recent:
        role = "model" if message.role == "assistant" else "user"
        turns.append(ConversationTurn(role=role, text=message.content))
    turns.append(ConversationTurn(role="user", text=query))
    return turns


def build_relevant_data_payload(
    data: WearableData, types: DataTypeFlags
) -> dict[str, Any] | None:
    """The data actually used for the answer, or None when nothing applies."""
    payload: dict[str, Any] = {}
    if types.sleep:
        payload["sleep"] = data.sleep
    if types.activity:
        payload["activity"] = data.activity
    if types.readiness:
        payload["readiness"] = data.readiness
    if types.heart_rate:
        payload["heartRate"] = {"dailyStats": summarize_daily_stats(data.heart_rate)}
    return payload or None


def build_prompt(
    query: str,
    date_range: DateRange,
    data: WearableData,
    types: DataTypeFlags,
    history: list[HistoryMessage] | None = None,
    max_history_turns: int = DEFAULT_HISTORY_TURNS,
) -> GenerationContents:
    context = build_grounding_context(
        describe_date_range(date_range), build_data_sections(data, types)
    )
    return build_stream_input(query, context, history, max_history_turns)
