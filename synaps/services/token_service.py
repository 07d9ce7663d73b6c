"""Access tokens for the public API.

The user-facing authorization step happens outside this service. A trusted
OAuth client (registered with its id and secret) exchanges that result for
tokens at the token endpoint; this store records them and answers whether a
bearer header maps to a live user.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock

from config import TOKEN_TTL_SECONDS


@dataclass
class AccessToken:
    token: str
    user_id: str
    expires_at: datetime
    refresh_token: str | None = None
    client_id: str | None = None
    revoked: bool = False

    def to_dict(self) -> dict:
        """OAuth token response body."""
        expires_in = int((self.expires_at - datetime.now(timezone.utc)).total_seconds())
        return {
            "access_token": self.token,
            "token_type": "Bearer",
            "expires_in": max(expires_in, 0),
            "refresh_token": self.refresh_token,
        }


@dataclass
class TokenCheck:
    """Outcome of a bearer header check."""
    user_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TokenStore:
    """Thread-safe in-memory token and client registry."""

    def __init__(self, ttl_seconds: int = TOKEN_TTL_SECONDS):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._tokens: dict[str, AccessToken] = {}
        self._clients: dict[str, str] = {}
        self._lock = Lock()

    def register_client(self, client_id: str, client_secret: str) -> None:
        with self._lock:
            self._clients[client_id] = client_secret

    def verify_client(self, client_id: str | None, client_secret: str | None) -> bool:
        if not isinstance(client_id, str) or not isinstance(client_secret, str):
            return False
        with self._lock:
            expected = self._clients.get(client_id)
        if expected is None:
            return False
        return secrets.compare_digest(expected.encode("utf-8"), client_secret.encode("utf-8"))

    def issue(
        self,
        user_id: str,
        *,
        ttl: timedelta | None = None,
        token: str | None = None,
        client_id: str | None = None,
    ) -> AccessToken:
        access = AccessToken(
            token=token or secrets.token_urlsafe(32),
            user_id=user_id,
            expires_at=datetime.now(timezone.utc) + (ttl if ttl is not None else self.ttl),
            refresh_token=secrets.token_urlsafe(32),
            client_id=client_id,
        )
        with self._lock:
            self._tokens[access.token] = access
        return access

    def refresh(self, refresh_token: str | None, client_id: str) -> AccessToken | None:
        """Swap a refresh token for a new access token; the refresh token is kept."""
        if not refresh_token:
            return None
        with self._lock:
            current = next(
                (
                    t for t in self._tokens.values()
                    if t.refresh_token == refresh_token and t.client_id == client_id and not t.revoked
                ),
                None,
            )
            if current is None:
                return None
            del self._tokens[current.token]
            access = AccessToken(
                token=secrets.token_urlsafe(32),
                user_id=current.user_id,
                expires_at=datetime.now(timezone.utc) + self.ttl,
                refresh_token=refresh_token,
                client_id=client_id,
            )
            self._tokens[access.token] = access
        return access

    def revoke(self, token: str) -> bool:
        with self._lock:
            access = self._tokens.get(token)
            if access is None:
                return False
            access.revoked = True
            return True

    def verify(self, authorization: str | None) -> TokenCheck:
        """Check an ``Authorization: Bearer <token>`` header value."""
        if not authorization or not authorization.startswith("Bearer "):
            return TokenCheck(error="unauthorized")
        token = authorization[len("Bearer "):].strip()
        with self._lock:
            access = self._tokens.get(token)
        if access is None or access.revoked:
            return TokenCheck(error="invalid_token")
        if access.expires_at < datetime.now(timezone.utc):
            return TokenCheck(error="token_expired")
        return TokenCheck(user_id=access.user_id)
