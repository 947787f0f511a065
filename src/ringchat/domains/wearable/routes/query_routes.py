"""HTTP route for streamed question answering."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ringchat.core.server.http import attach_session, resolve_session, sse_response
from ringchat.domains.wearable.domain_logic.query_orchestrator import (
    NotConnectedError,
    QueryValidationError,
    parse_query_request,
)

if TYPE_CHECKING:
    from ringchat.domains.wearable.domain_logic.query_orchestrator import QueryOrchestrator

logger = logging.getLogger(__name__)


def create_query_routes(orchestrator: QueryOrchestrator, cookie_name: str) -> list[Route]:
    """Routes: ``POST /api/oura/query``."""

    async def query(request: Request) -> Response:
        session_id, is_new = resolve_session(request, cookie_name)
        try:
            try:
                body = await request.json()
            except ValueError as exc:  # malformed JSON or undecodable bytes
                raise QueryValidationError("Query is required") from exc
            parsed = parse_query_request(body)
            events = await orchestrator.handle(
                parsed.query,
                parsed.history_messages(),
                session_id,
                is_disconnected=request.is_disconnected,
            )
        except QueryValidationError as exc:
            response: Response = JSONResponse({"error": str(exc)}, status_code=400)
        except NotConnectedError as exc:
            response = JSONResponse({"error": str(exc)}, status_code=401)
        except Exception as exc:
            logger.exception("Error processing query")
            response = JSONResponse(
                {"error": "Failed to process query", "details": str(exc)},
                status_code=500,
            )
        else:
            response = sse_response(events)
        return attach_session(response, cookie_name, session_id, is_new)

    return [Route("/api/oura/query", query, methods=["POST"])]
