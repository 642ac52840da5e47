"""CSRF token stores and token issuing/verification.

The builder only renders a token it is given. These helpers cover minting,
storing and checking that token for applications without their own scheme.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import threading
from collections.abc import MutableMapping
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


@runtime_checkable
class TokenStore(Protocol):
    """Interface for pluggable CSRF token storage (session, cookie, Redis...)."""

    def get(self, session_id: str) -> str | None:
        """Return the token stored for a session, or None."""
        ...

    def set(self, session_id: str, token: str) -> None:
        """Store the token for a session, replacing any previous token."""
        ...

    def delete(self, session_id: str) -> None:
        """Forget the token for a session."""
        ...


class MemoryTokenStore:
    """Process-local token store. Safe for concurrent use.

    Tokens live until revoked, so the store grows by one entry per session.
    Call CSRFTokens.revoke() when a session ends, or use a store with expiry
    (Redis, the server-side session) when sessions are not tracked.
    """

    def __init__(self):
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> str | None:
        with self._lock:
            return self._tokens.get(session_id)

    def set(self, session_id: str, token: str) -> None:
        with self._lock:
            self._tokens[session_id] = token

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._tokens.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


class SessionTokenStore:
    """Token store backed by a server-side session mapping.

    The session itself is already per-user, so session ids are only used to
    build the storage key.
    """

    def __init__(self, session: MutableMapping, key: str = "_csrf_token"):
        self.session = session
        self.key = key

    def _key(self, session_id: str) -> str:
        return f"{self.key}:{session_id}" if session_id else self.key

    def get(self, session_id: str) -> str | None:
        return self.session.get(self._key(session_id))

    def set(self, session_id: str, token: str) -> None:
        self.session[self._key(session_id)] = token

    def delete(self, session_id: str) -> None:
        self.session.pop(self._key(session_id), None)


class CSRFTokens:
    """Issue and verify single-use CSRF tokens against a TokenStore.

    Usage:
        tokens = CSRFTokens(MemoryTokenStore())

        # Rendering
        form = new(action="/profile", method="POST", csrf_token=tokens.issue(sid))

        # Handling the submission
        if not tokens.verify(sid, submitted.get("_csrf", "")):
            ...
    """

    def __init__(self, store: TokenStore):
        self.store = store

    def issue(self, session_id: str) -> str:
        """Return the session's current token, minting one if needed."""
        token = self.store.get(session_id)
        if not token:
            token = generate_token()
            self.store.set(session_id, token)
        return token

    def verify(self, session_id: str, submitted: str | None) -> bool:
        """Check a submitted token. Rotates the token on success (single-use)."""
        stored = self.store.get(session_id)

        if not stored or not submitted or not hmac.compare_digest(str(submitted), str(stored)):
            logger.warning("CSRF token verification failed")
            return False

        self.store.set(session_id, generate_token())
        return True

    def revoke(self, session_id: str) -> None:
        self.store.delete(session_id)
