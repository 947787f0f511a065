"""MCP tools for asking questions about wearable data.

Assistant clients connected over MCP use the server's ``local`` session,
which is backed by a configured personal access token (or mock data).
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from ringchat.core.session.store import LOCAL_SESSION_ID
from ringchat.domains.wearable.domain_logic.query_orchestrator import (
    NotConnectedError,
    QueryValidationError,
)

if TYPE_CHECKING:
    from ringchat.domains.wearable.domain_logic.query_orchestrator import QueryOrchestrator

logger = logging.getLogger(__name__)


def register_query_tools(mcp: FastMCP, orchestrator: QueryOrchestrator) -> None:
    """Register wearable query tools on the MCP server."""

    @mcp.tool
    async def ask_wearable_data(ctx: Context, query: str) -> str:
        """Answer a question about the user's Oura ring data.

        Resolves the period the question refers to ("last night", "past 2
        weeks", "2025-03-01 to 2025-03-14"), loads the relevant sleep,
        activity, readiness or heart-rate data, and returns a grounded answer
        together with the data it was based on.

        Args:
            query: The question, in plain language (at most 500 characters).
        """
        start_time = time.monotonic()
        try:
            events = await orchestrator.handle(query, [], LOCAL_SESSION_ID)
        except (QueryValidationError, NotConnectedError) as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        parts: list[str] = []
        oura_data = None
        async for event in events:
            if "error" in event:
                logger.warning("ask_wearable_data failed: %s", event["error"])
                return json.dumps({"status": "error", "message": event["error"]})
            if "content" in event:
                parts.append(event["content"])
            if event.get("done"):
                oura_data = event.get("ouraData")

        elapsed_ms = (time.monotonic() - start_time) * 1000
        return json.dumps({
            "status": "ok",
            "answer": "".join(parts),
            "ouraData": oura_data,
            "data_source": orchestrator.data_provider.data_source,
            "duration_ms": round(elapsed_ms, 1),
        })
