"""Session state: wearable OAuth tokens and pending OAuth state per session."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from ringchat.core.session.encryption import EncryptionError, TokenCipher

logger = logging.getLogger(__name__)

LOCAL_SESSION_ID = "local"


class KeyValueStore(Protocol):
    """Minimal storage interface behind the session store."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local dict store. Nothing survives a restart."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


@dataclass
class OuraTokens:
    """OAuth credentials for one session.

    ``expires_at`` is a Unix timestamp in seconds; None means the token does
    not expire (personal access tokens).
    """

    access_token: str
    refresh_token: str = ""
    expires_at: float | None = None

    @classmethod
    def from_expires_in(
        cls, access_token: str, refresh_token: str, expires_in: float, now: float | None = None
    ) -> OuraTokens:
        now = time.time() if now is None else now
        return cls(access_token=access_token, refresh_token=refresh_token, expires_at=now + expires_in)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OuraTokens:
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token", ""),
            expires_at=data.get("expires_at"),
        )


class SessionStore:
    """Per-session token storage, optionally encrypted at rest.

    Usage::

        store = SessionStore(cipher=TokenCipher(key))
        store.set_tokens(session_id, OuraTokens("access", "refresh", expires_at))
        if store.is_connected(session_id):
            ...
    """

    def __init__(
        self,
        backend: KeyValueStore | None = None,
        cipher: TokenCipher | None = None,
    ) -> None:
        self._backend = backend or InMemoryKeyValueStore()
        self._cipher = cipher

    @staticmethod
    def _tokens_key(session_id: str) -> str:
        return f"{session_id}:oura_tokens"

    @staticmethod
    def _state_key(session_id: str) -> str:
        return f"{session_id}:oauth_state"

    def get_tokens(self, session_id: str | None) -> OuraTokens | None:
        if not session_id:
            return None
        stored = self._backend.get(self._tokens_key(session_id))
        if stored is None:
            return None
        if self._cipher is not None:
            try:
                record = self._cipher.open(stored)
                if self._cipher.key_count > 1:
                    self._backend.set(self._tokens_key(session_id), self._cipher.rotate(stored))
            except EncryptionError:
                logger.exception("Could not decrypt tokens for session; dropping them")
                self.clear_tokens(session_id)
                return None
        else:
            record = stored
        tokens = OuraTokens.from_dict(record)
        return tokens if tokens.access_token else None

    def set_tokens(self, session_id: str, tokens: OuraTokens) -> None:
        record: Any = asdict(tokens)
        if self._cipher is not None:
            record = self._cipher.seal(record)
        self._backend.set(self._tokens_key(session_id), record)

    def clear_tokens(self, session_id: str) -> None:
        self._backend.delete(self._tokens_key(session_id))

    def is_connected(self, session_id: str | None) -> bool:
        return self.get_tokens(session_id) is not None

    def set_oauth_state(self, session_id: str, state: str) -> None:
        self._backend.set(self._state_key(session_id), state)

    def pop_oauth_state(self, session_id: str) -> str | None:
        key = self._state_key(session_id)
        state = self._backend.get(key)
        self._backend.delete(key)
        return state
