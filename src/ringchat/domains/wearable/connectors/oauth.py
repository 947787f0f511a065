"""Oura OAuth2: authorization URL, code exchange, and transparent refresh."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from urllib.parse import urlencode

import httpx

from ringchat.core.session.store import OuraTokens, SessionStore

logger = logging.getLogger(__name__)

OURA_SCOPES = "personal daily heartrate"

# Refresh when the access token has less than this many seconds left.
REFRESH_MARGIN_SECONDS = 60


class OuraOAuthClient:
    """Talks to Oura's OAuth endpoints. Failures are logged and return None."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        auth_url: str = "https://cloud.ouraring.com/oauth/authorize",
        token_url: str = "https://api.ouraring.com/oauth/token",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_url = auth_url
        self.token_url = token_url
        self._client = http_client or httpx.AsyncClient(timeout=30.0)

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @staticmethod
    def new_state() -> str:
        return secrets.token_hex(16)

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": OURA_SCOPES,
            "state": state,
        }
        return f"{self.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> OuraTokens | None:
        if not self.is_configured():
            return None
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            "exchange code for tokens",
        )

    async def refresh(self, refresh_token: str) -> OuraTokens | None:
        if not self.is_configured():
            return None
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            "refresh token",
        )

    async def _token_request(self, form: dict[str, str], action: str) -> OuraTokens | None:
        try:
            response = await self._client.post(self.token_url, data=form)
            response.raise_for_status()
            payload = response.json()
            return OuraTokens.from_expires_in(
                access_token=payload["access_token"],
                refresh_token=payload.get("refresh_token", ""),
                expires_in=float(payload.get("expires_in", 0)),
            )
        except (httpx.HTTPError, KeyError, ValueError):
            logger.exception("Failed to %s", action)
            return None

    async def aclose(self) -> None:
        await self._client.aclose()


class TokenManager:
    """Hands out access tokens, refreshing them shortly before expiry.

    Oura refresh tokens are single-use, so refreshes for one session are
    serialized: concurrent requests wait for the first refresh and then use
    the tokens it stored.
    """

    def __init__(
        self,
        store: SessionStore,
        oauth_client: OuraOAuthClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._clock = clock
        self._refresh_locks: dict[str, asyncio.Lock] = {}

    def _is_fresh(self, tokens: OuraTokens) -> bool:
        if tokens.expires_at is None:
            return True
        return self._clock() < tokens.expires_at - REFRESH_MARGIN_SECONDS

    async def ensure_valid_access_token(self, session_id: str) -> str | None:
        """Return a usable access token for the session, or None.

        Tokens with more than ``REFRESH_MARGIN_SECONDS`` left are returned as
        is. Otherwise the refresh token is exchanged and the new pair stored.
        """
        tokens = self._store.get_tokens(session_id)
        if tokens is None:
            return None
        if self._is_fresh(tokens):
            return tokens.access_token

        lock = self._refresh_locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            # Re-read: another request may have refreshed while this one waited.
            tokens = self._store.get_tokens(session_id)
            if tokens is None:
                return None
            if self._is_fresh(tokens):
                return tokens.access_token

            if not tokens.refresh_token or self._oauth is None:
                return None

            refreshed = await self._oauth.refresh(tokens.refresh_token)
            if refreshed is None:
                return None

            self._store.set_tokens(session_id, refreshed)
            logger.info("Refreshed Oura access token for session")
            return refreshed.access_token
