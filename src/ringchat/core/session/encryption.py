"""Encryption of OAuth token records held in the session store.

When ``SESSION_ENCRYPTION_KEY`` is set, token records are sealed with Fernet
before they reach the store backend. The setting accepts a comma-separated
list of keys: the first key seals new records, and every key is tried when
opening, so a key can be rotated without disconnecting existing sessions.
"""

from __future__ import annotations

import json
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet


class EncryptionError(Exception):
    """A token record could not be sealed or opened."""


def _parse_keys(keys: str) -> list[str]:
    return [k.strip() for k in keys.split(",") if k.strip()]


class TokenCipher:
    """Seals token records (dicts) into opaque strings and back.

    Usage::

        cipher = TokenCipher("new-key,old-key")
        sealed = cipher.seal({"access_token": "abc"})
        cipher.open(sealed)  # {"access_token": "abc"}
    """

    def __init__(self, keys: str) -> None:
        parsed = _parse_keys(keys or "")
        if not parsed:
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = MultiFernet([Fernet(k.encode()) for k in parsed])
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self.key_count = len(parsed)

    def seal(self, record: dict[str, Any]) -> str:
        try:
            payload = json.dumps(record, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(payload.encode()).decode()

    def open(self, sealed: str) -> dict[str, Any]:
        try:
            payload = self._fernet.decrypt(sealed.encode())
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        record = json.loads(payload)
        if not isinstance(record, dict):
            raise EncryptionError("Decryption failed: not a token record")
        return record

    def rotate(self, sealed: str) -> str:
        """Re-seal a record under the primary key."""
        try:
            return self._fernet.rotate(sealed.encode()).decode()
        except InvalidToken as exc:
            raise EncryptionError("Rotation failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()
