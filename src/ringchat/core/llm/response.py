"""Parsing helpers for raw model output and stream events."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first ``{...}`` JSON object embedded in model output.

    Models often wrap JSON in prose or code fences; everything outside the
    outermost braces is ignored. Returns None when nothing parses to a dict.
    """
    match = _JSON_OBJECT.search(text.strip())
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def anthropic_event_text(event: Any) -> str | None:
    """Text carried by an Anthropic streaming event, if any.

    Only ``content_block_delta`` events with a ``text_delta`` carry answer
    text; message/ping/stop events return None. A text delta with no string
    payload is malformed and raises ``ValueError``.
    """
    if getattr(event, "type", None) != "content_block_delta":
        return None
    delta = getattr(event, "delta", None)
    if getattr(delta, "type", None) != "text_delta":
        return None
    text = getattr(delta, "text", None)
    if not isinstance(text, str):
        raise ValueError("text_delta event without text")
    return text


def openai_chunk_text(chunk: Any) -> str | None:
    """Text carried by an OpenAI chat-completion chunk, if any."""
    choices = getattr(chunk, "choices", None)
    if choices is None:
        raise ValueError("chunk without choices")
    if not choices:
        # Usage-only trailer chunk
        return None
    delta = getattr(choices[0], "delta", None)
    if delta is None:
        raise ValueError("choice without delta")
    content = getattr(delta, "content", None)
    if content is not None and not isinstance(content, str):
        raise ValueError("delta content is not text")
    return content
