"""End-to-end query handling: question in, stream of answer events out.

Events are plain dicts, serialized by the transport:

- ``{"content": str}`` for each answer fragment
- ``{"ouraData": dict | None, "done": True}`` once the answer is complete
- ``{"error": str}`` when processing fails after streaming has begun
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from ringchat.core.cache.response_cache import SessionResponseCache
from ringchat.core.llm.client import GenerationClient
from ringchat.domains.wearable.connectors import WearableDataProvider
from ringchat.domains.wearable.domain_logic.context_builder import (
    DEFAULT_HISTORY_TURNS,
    build_prompt,
    build_relevant_data_payload,
    no_data_message,
)
from ringchat.domains.wearable.domain_logic.data_fetch import fetch_wearable_data
from ringchat.domains.wearable.domain_logic.date_range import DateRangeResolver
from ringchat.domains.wearable.domain_logic.models import (
    DataTypeFlags,
    DateRange,
    HistoryMessage,
    WearableData,
)
from ringchat.domains.wearable.domain_logic.relevance import classify

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500

QueryEvent = dict[str, Any]


class QueryValidationError(ValueError):
    """The submitted query or history is malformed."""


class NotConnectedError(Exception):
    """The session has no wearable connection."""


class HistoryTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class QueryRequest(BaseModel):
    """Body of a query submission."""

    model_config = {"populate_by_name": True}

    query: str
    conversation_history: list[HistoryTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )

    @field_validator("query")
    @classmethod
    def _check_query(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("query_empty", "Please enter a question")
        if len(value) > MAX_QUERY_LENGTH:
            raise PydanticCustomError(
                "query_too_long", "Please keep your question under 500 characters"
            )
        return value

    def history_messages(self) -> list[HistoryMessage]:
        return [HistoryMessage(role=t.role, content=t.content) for t in self.conversation_history]


def parse_query_request(payload: Any) -> QueryRequest:
    """Validate a raw request body, raising QueryValidationError with a user-facing message."""
    try:
        return QueryRequest.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Query is required"
        raise QueryValidationError(message) from exc


def content_event(text: str) -> QueryEvent:
    return {"content": text}


def done_event(payload: dict[str, Any] | None) -> QueryEvent:
    return {"ouraData": payload, "done": True}


def error_event(message: str) -> QueryEvent:
    return {"error": f"Failed to process query: {message}"}


class QueryOrchestrator:
    """Composes date resolution, relevance, caching, fetching and generation.

    Usage::

        orchestrator = QueryOrchestrator(provider, generation_client, cache)
        events = await orchestrator.handle("How did I sleep last night?", [], session_id)
        async for event in events:
            ...
    """

    def __init__(
        self,
        data_provider: WearableDataProvider,
        generation_client: GenerationClient,
        cache: SessionResponseCache,
        date_resolver: DateRangeResolver | None = None,
        *,
        max_history_turns: int = DEFAULT_HISTORY_TURNS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.data_provider = data_provider
        self.generation_client = generation_client
        self.cache = cache
        self.date_resolver = date_resolver or DateRangeResolver(generation_client, today=today)
        self.max_history_turns = max_history_turns

    async def handle(
        self,
        query: str,
        conversation_history: list[HistoryMessage] | list[dict[str, Any]] | None,
        session_id: str,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[QueryEvent]:
        """Validate the request and return its event stream.

        Raises:
            QueryValidationError: the query is empty, too long, or the
                history is malformed.
            NotConnectedError: the session has no wearable connection.
        """
        request = parse_query_request(
            {
                "query": query,
                "conversationHistory": [
                    {"role": m.role, "content": m.content} if isinstance(m, HistoryMessage) else m
                    for m in conversation_history or []
                ],
            }
        )
        if not self.data_provider.is_connected(session_id):
            raise NotConnectedError("Please connect your Oura ring first.")

        return self._events(
            request.query, request.history_messages(), session_id, is_disconnected
        )

    async def _events(
        self,
        query: str,
        history: list[HistoryMessage],
        session_id: str,
        is_disconnected: Callable[[], Awaitable[bool]] | None,
    ) -> AsyncIterator[QueryEvent]:
        try:
            date_range = await self.date_resolver.resolve(query)
            logger.info(
                "Query date range: %s to %s (custom: %s)",
                date_range.start_date,
                date_range.end_date,
                date_range.uses_custom_range,
            )
            types = classify(query)

            data, date_range = await self._load_data(session_id, date_range, types)

            if data.is_empty():
                yield content_event(no_data_message(date_range))
                yield done_event(None)
                return

            contents = build_prompt(
                query, date_range, data, types, history, self.max_history_turns
            )
            stream = await self.generation_client.generate_stream(contents)

            async for text in stream:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Client disconnected; stopping answer stream")
                    return
                if text:
                    yield content_event(text)

            yield done_event(build_relevant_data_payload(data, types))
        except Exception as exc:
            logger.exception("Error processing query")
            yield error_event(str(exc) or exc.__class__.__name__)

    async def _load_data(
        self, session_id: str, date_range: DateRange, types: DataTypeFlags
    ) -> tuple[WearableData, DateRange]:
        """Serve from the session cache when possible, otherwise fetch and cache."""
        entry = self.cache.get(session_id)
        if entry is not None:
            if not date_range.uses_custom_range:
                reused = DateRange(entry.start_date, entry.end_date, uses_custom_range=True)
                missing = entry.included_types.missing(types)
                if not missing.any():
                    logger.info("Using cached data for follow-up query")
                    return entry.data, reused
                logger.info(
                    "Follow-up needs categories missing from cache; fetching them for %s to %s",
                    entry.start_date,
                    entry.end_date,
                )
                extra = await fetch_wearable_data(
                    self.data_provider, session_id, entry.start_date, entry.end_date, missing
                )
                data = entry.data.with_categories(extra, missing)
                self.cache.set(
                    session_id,
                    entry.start_date,
                    entry.end_date,
                    data,
                    entry.included_types.union(missing),
                )
                return data, reused
            if self.cache.matches(entry, date_range.start_date, date_range.end_date, types):
                logger.info(
                    "Using cached data (subset) for range %s to %s",
                    date_range.start_date,
                    date_range.end_date,
                )
                data = self.cache.filter_data(entry, date_range.start_date, date_range.end_date)
                return data, date_range

        logger.info("Fetching fresh data from %s", self.data_provider.data_source)
        data = await fetch_wearable_data(
            self.data_provider,
            session_id,
            date_range.start_date,
            date_range.end_date,
            types,
        )
        self.cache.set(session_id, date_range.start_date, date_range.end_date, data, types)
        return data, date_range
