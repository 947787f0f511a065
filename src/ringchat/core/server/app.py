"""ringchat server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import FastMCP
from starlette.routing import Route

from ringchat.core.cache.response_cache import SessionResponseCache
from ringchat.core.config.settings import Settings, get_settings
from ringchat.core.llm.client import GenerationClient
from ringchat.core.llm.provider import LLMProvider, create_provider
from ringchat.core.session.encryption import EncryptionError, TokenCipher
from ringchat.core.session.store import LOCAL_SESSION_ID, OuraTokens, SessionStore
from ringchat.domains.wearable.connectors import WearableDataProvider
from ringchat.domains.wearable.connectors.oauth import OuraOAuthClient, TokenManager
from ringchat.domains.wearable.connectors.oura import OuraProvider
from ringchat.domains.wearable.connectors.providers import MockWearableProvider
from ringchat.domains.wearable.domain_logic.query_orchestrator import QueryOrchestrator
from ringchat.domains.wearable.prompts.wearable_prompts import register_wearable_prompts
from ringchat.domains.wearable.routes.auth_routes import create_auth_routes
from ringchat.domains.wearable.routes.data_routes import create_data_routes
from ringchat.domains.wearable.routes.query_routes import create_query_routes
from ringchat.domains.wearable.tools.query_tools import register_query_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "ringchat"
SERVER_VERSION = "0.1.0"


def _select_llm(settings: Settings) -> tuple[LLMProvider, list[str]]:
    """Provider and model fallback list for the configured backend."""
    if settings.llm_provider == "mock":
        provider_name, api_key, models = "mock", "", ["mock"]
    elif settings.llm_provider == "anthropic":
        api_key = settings.anthropic_api_key
        models = settings.anthropic_models
        provider_name = "anthropic" if api_key else "mock"
    elif settings.llm_provider == "openai":
        api_key = settings.openai_api_key
        models = settings.openai_models
        provider_name = "openai" if api_key else "mock"
    else:  # pragma: no cover
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")

    if provider_name == "mock" and settings.llm_provider != "mock":
        logger.warning(
            "No API key configured for provider '%s'; falling back to mock provider",
            settings.llm_provider,
        )
        models = ["mock"]

    return create_provider(provider_name=provider_name, api_key=api_key), models


def _build_session_store(settings: Settings) -> SessionStore:
    if not settings.session_encryption_key:
        logger.info(
            "No SESSION_ENCRYPTION_KEY configured; session tokens are kept unencrypted in memory"
        )
        return SessionStore()
    try:
        return SessionStore(cipher=TokenCipher(settings.session_encryption_key))
    except EncryptionError as exc:
        logger.error("Failed to initialize session encryption: %s", exc)
        logger.warning("Continuing with unencrypted in-memory session tokens")
        return SessionStore()


def _mount(server: FastMCP, routes: list[Route]) -> None:
    for route in routes:
        methods = sorted(m for m in route.methods or () if m != "HEAD")
        server.custom_route(route.path, methods=methods)(route.endpoint)


def create_app(
    *,
    data_provider_override: WearableDataProvider | None = None,
    llm_provider_override: LLMProvider | None = None,
    session_store_override: SessionStore | None = None,
    cache_override: SessionResponseCache | None = None,
) -> FastMCP:
    """Create and configure the ringchat server.

    This is the main application factory. It:
    1. Creates the generation client (with model fallback)
    2. Creates the session store and the Oura OAuth client
    3. Initializes the wearable data provider (Oura or mock)
    4. Creates the response cache and the query orchestrator
    5. Creates the FastMCP server, whose lifespan runs the cache sweep
    6. Registers tools, prompts and HTTP routes
    """
    settings = get_settings()

    # --- Generative model ---
    if llm_provider_override is not None:
        provider = llm_provider_override
        models = [getattr(provider, "name", "override")]
    else:
        provider, models = _select_llm(settings)
    generation_client = GenerationClient(
        provider,
        models,
        max_retries=settings.llm_max_retries,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )
    logger.info("Generation models (in fallback order): %s", ", ".join(models))

    # --- Sessions and OAuth ---
    if session_store_override is not None:
        store = session_store_override
    else:
        store = _build_session_store(settings)
    if settings.oura_personal_access_token:
        store.set_tokens(LOCAL_SESSION_ID, OuraTokens(settings.oura_personal_access_token))
        logger.info("Local session seeded from personal access token")

    oauth_client = OuraOAuthClient(
        settings.oura_client_id,
        settings.oura_client_secret,
        auth_url=settings.oura_auth_url,
        token_url=settings.oura_token_url,
    )

    # --- Wearable data provider ---
    if data_provider_override is not None:
        data_provider = data_provider_override
    elif settings.data_provider == "mock":
        data_provider = MockWearableProvider()
        logger.info("Using mock wearable data provider")
    else:
        data_provider = OuraProvider(
            TokenManager(store, oauth_client),
            store,
            api_base=settings.oura_api_base,
            timeout=settings.http_timeout_seconds,
        )
        logger.info("Using Oura data provider at %s", settings.oura_api_base)

    # --- Cache and orchestrator ---
    cache = cache_override if cache_override is not None else SessionResponseCache(
        ttl=settings.cache_ttl_seconds,
        sweep_interval=settings.cache_sweep_interval_seconds,
    )
    orchestrator = QueryOrchestrator(
        data_provider,
        generation_client,
        cache,
        max_history_turns=settings.max_history_turns,
    )

    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
        cache.start()
        try:
            yield
        finally:
            await cache.stop()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Answers plain-language questions about the user's Oura ring data "
            "(sleep, activity, readiness, heart rate), grounded in the data for "
            "the period the question refers to."
        ),
        lifespan=lifespan,
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "llm_provider": generation_client.provider_name,
            "models": generation_client.models,
            "data_source": data_provider.data_source,
            "oauth_configured": oauth_client.is_configured(),
            "cached_sessions": len(cache),
        }

    register_query_tools(server, orchestrator)
    logger.info("Wearable query tools registered")

    # --- Register prompts ---
    register_wearable_prompts(server)

    # --- Register HTTP routes ---
    cookie = settings.session_cookie_name
    _mount(server, create_query_routes(orchestrator, cookie))
    _mount(server, create_data_routes(data_provider, oauth_client, cookie))
    _mount(server, create_auth_routes(oauth_client, store, cache, cookie))

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
