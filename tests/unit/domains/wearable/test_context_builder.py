"""Tests for prompt and payload assembly."""

from __future__ import annotations

import json

from ringchat.core.llm.provider import ConversationTurn
from ringchat.core.llm.system_prompt import CONTEXT_ACKNOWLEDGEMENT, WEARABLE_ASSISTANT_PROMPT
from ringchat.domains.wearable.domain_logic.context_builder import (
    build_data_sections,
    build_prompt,
    build_relevant_data_payload,
    build_stream_input,
    describe_date_range,
    no_data_message,
)
from ringchat.domains.wearable.domain_logic.heart_rate import build_heart_rate_result
from ringchat.domains.wearable.domain_logic.models import (
    DataTypeFlags,
    DateRange,
    HistoryMessage,
    WearableData,
)


def _data() -> WearableData:
    return WearableData(
        sleep=[{"day": "2025-06-14", "score": 82}],
        activity=[{"day": "2025-06-14", "steps": 9000}],
        readiness=[{"day": "2025-06-14", "score": 77}],
        heart_rate=build_heart_rate_result([
            {"bpm": 55, "source": "rest", "timestamp": "2025-06-14T03:00:00Z"},
            {"bpm": 95, "source": "workout", "timestamp": "2025-06-14T18:00:00Z"},
        ]),
    )


def _history(n: int) -> list[HistoryMessage]:
    return [
        HistoryMessage(role="user" if i % 2 == 0 else "assistant", content=f"message {i}")
        for i in range(n)
    ]


class TestDataSections:
    def test_only_relevant_sections(self):
        sections = build_data_sections(_data(), DataTypeFlags(sleep=True))
        assert "\nSLEEP DATA:\n" in sections
        assert "ACTIVITY DATA" not in sections
        assert "HEART RATE" not in sections

    def test_heart_rate_section_is_summary_only(self):
        sections = build_data_sections(_data(), DataTypeFlags(heart_rate=True))
        header = "\nHEART RATE DAILY SUMMARY (min/max/avg bpm per day):\n"
        assert sections.startswith(header)
        summary = json.loads(sections[len(header):])
        assert summary == [{"day": "2025-06-14", "min": 55, "max": 95, "avg": 75}]
        assert "timestamp" not in sections


class TestStreamInput:
    def test_flat_prompt_without_history(self):
        contents = build_stream_input("How did I sleep?", "CONTEXT")
        assert contents == (
            "CONTEXT\n\nUSER QUESTION: How did I sleep?\n\n"
            "Please analyze the data and answer the user's question."
        )

    def test_turns_with_history(self):
        contents = build_stream_input("And today?", "CONTEXT", _history(2))
        assert isinstance(contents, list)
        assert contents[0].role == "user"
        assert contents[0].text.startswith("CONTEXT")
        assert contents[1] == ConversationTurn(role="model", text=CONTEXT_ACKNOWLEDGEMENT)
        assert contents[2] == ConversationTurn(role="user", text="message 0")
        assert contents[3] == ConversationTurn(role="model", text="message 1")
        assert contents[-1] == ConversationTurn(role="user", text="And today?")

    def test_history_truncated_to_last_ten(self):
        contents = build_stream_input("Q", "CONTEXT", _history(15))
        history_turns = contents[2:-1]
        assert len(history_turns) == 10
        assert history_turns[0].text == "message 5"
        assert history_turns[-1].text == "message 14"

    def test_custom_history_window(self):
        contents = build_stream_input("Q", "CONTEXT", _history(6), max_history_turns=2)
        assert [t.text for t in contents[2:-1]] == ["message 4", "message 5"]


class TestPayload:
    def test_payload_contains_only_relevant_categories(self):
        payload = build_relevant_data_payload(_data(), DataTypeFlags(sleep=True, heart_rate=True))
        assert set(payload) == {"sleep", "heartRate"}
        assert payload["heartRate"] == {
            "dailyStats": [{"day": "2025-06-14", "min": 55, "max": 95, "avg": 75}]
        }

    def test_payload_none_when_nothing_flagged(self):
        assert build_relevant_data_payload(_data(), DataTypeFlags()) is None


class TestDescriptions:
    def test_custom_range_description(self):
        assert describe_date_range(DateRange("2025-06-01", "2025-06-07")) == (
            "from 2025-06-01 to 2025-06-07"
        )

    def test_default_range_description(self):
        default = DateRange("2025-06-08", "2025-06-15", uses_custom_range=False)
        assert describe_date_range(default) == "from the last 7 days"

    def test_no_data_messages(self):
        custom = no_data_message(DateRange("2025-06-01", "2025-06-07"))
        assert "for the period 2025-06-01 to 2025-06-07" in custom
        default = no_data_message(DateRange("a", "b", uses_custom_range=False))
        assert "any recent data" in default

    def test_prompt_includes_persona_and_range(self):
        prompt = build_prompt(
            "How did I sleep?",
            DateRange("2025-06-14", "2025-06-14"),
            _data(),
            DataTypeFlags(sleep=True),
        )
        assert prompt.startswith(WEARABLE_ASSISTANT_PROMPT)
        assert "Here is the user's Oura data from 2025-06-14 to 2025-06-14:" in prompt
        assert prompt.endswith("Please analyze the data and answer the user's question.")
