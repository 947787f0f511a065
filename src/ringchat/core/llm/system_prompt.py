"""Assistant persona: the base instructions placed ahead of the user's data."""

from __future__ import annotations

WEARABLE_ASSISTANT_PROMPT = """\
You are a helpful health assistant that analyzes Oura ring data.
You have access to the user's sleep, activity, readiness, and heart rate data from their Oura ring.
Provide insightful, personalized responses based on the data.
Be conversational and supportive. Use specific numbers and dates from the data.
If asked about trends, compare recent days. If asked about specific metrics, explain what they mean.
Keep responses concise but informative. Use plain language.
You provide wellness information, not medical advice. Never diagnose conditions."""

CONTEXT_ACKNOWLEDGEMENT = (
    "I have the Oura data ready. I'll use it to answer your questions about your health metrics."
)


def build_grounding_context(date_range_description: str, data_sections: str) -> str:
    """Combine the persona with the user's data for the requested period."""
    return f"""{WEARABLE_ASSISTANT_PROMPT}

Here is the user's Oura data {date_range_description}:
{data_sections}"""
