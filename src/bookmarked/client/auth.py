"""Authentication against Supabase (GoTrue) and session persistence.

This module provides:
- Session: the signed-in user's tokens
- SessionStore: OS keyring persistence of the current session
- SupabaseAuth: password sign-in, token refresh, sign-out and the
  ``get_current_user_id()`` identity check used by the sync engine
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

import httpx
import keyring
from keyring.errors import KeyringError

from bookmarked.client.api import AuthenticationError, handle_response
from bookmarked.core.config import SyncConfig

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "bookmarked"
KEYRING_SESSION_KEY = "session"

# Refresh a little before the token actually expires
EXPIRY_MARGIN = 60  # seconds


@dataclass
class Session:
    """Tokens of a signed-in user.

    Attributes:
        access_token: JWT sent with API requests.
        refresh_token: Token used to obtain a new access token.
        expires_at: Epoch seconds when the access token expires.
        user_id: Id of the authenticated user.
        email: Email of the authenticated user, if known.
    """

    access_token: str
    refresh_token: str
    expires_at: int
    user_id: str
    email: str | None = None

    def is_expired(self, now: float | None = None) -> bool:
        """Check whether the access token is (about to be) expired."""
        now = time.time() if now is None else now
        return now >= self.expires_at - EXPIRY_MARGIN

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Create from a stored dictionary."""
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(data["expires_at"]),
            user_id=data["user_id"],
            email=data.get("email"),
        )

    @classmethod
    def from_token_response(cls, data: dict[str, Any]) -> Session:
        """Create from a GoTrue ``/token`` response."""
        expires_at = data.get("expires_at")
        if expires_at is None:
            expires_at = int(time.time()) + int(data.get("expires_in", 3600))
        user = data.get("user") or {}
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(expires_at),
            user_id=user["id"],
            email=user.get("email"),
        )


class SessionStore:
    """Persists the current session in the OS keyring."""

    def __init__(
        self,
        service: str = KEYRING_SERVICE,
        key: str = KEYRING_SESSION_KEY,
    ) -> None:
        self._service = service
        self._key = key

    def load(self) -> Session | None:
        """Load the stored session.

        Returns:
            The session, or None if none is stored or it is unreadable.
        """
        try:
            raw = keyring.get_password(self._service, self._key)
        except KeyringError as e:
            logger.warning("Could not read session from keyring: %s", e)
            return None
        if not raw:
            return None
        try:
            return Session.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring corrupted stored session: %s", e)
            return None

    def save(self, session: Session) -> None:
        """Store a session, replacing any previous one."""
        keyring.set_password(self._service, self._key, json.dumps(session.to_dict()))

    def clear(self) -> None:
        """Remove the stored session if present."""
        try:
            keyring.delete_password(self._service, self._key)
        except KeyringError:
            # Nothing stored
            pass


class SupabaseAuth:
    """Identity provider backed by Supabase GoTrue.

    Usage:
        auth = SupabaseAuth(config, SessionStore())
        await auth.sign_in_with_password("me@example.com", "secret")
        user_id = await auth.get_current_user_id()
    """

    def __init__(
        self,
        config: SyncConfig,
        sessions: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the auth client.

        Args:
            config: Backend configuration.
            sessions: Session persistence (defaults to the OS keyring).
            transport: Optional custom transport (used by tests).
        """
        self._config = config
        self._sessions = sessions or SessionStore()
        self._session: Session | None = None
        self._client = httpx.AsyncClient(
            base_url=config.auth_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.anon_key},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    @property
    def session(self) -> Session | None:
        """Current session (loaded from the store on first access)."""
        if self._session is None:
            self._session = self._sessions.load()
        return self._session

    def access_token(self) -> str | None:
        """Access token of the current session, if signed in."""
        session = self.session
        return session.access_token if session else None

    def _store(self, session: Session) -> Session:
        self._sessions.save(session)
        self._session = session
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in and persist the new session.

        Raises:
            AuthenticationError: If the credentials are rejected.
            APIError: On other error responses.
        """
        response = await self._client.post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code == 400:
            raise AuthenticationError("Invalid login credentials", 400)
        session = Session.from_token_response(handle_response(response).json())
        logger.info("Signed in as %s", session.email or session.user_id)
        return self._store(session)

    async def refresh_session(self, session: Session) -> Session:
        """Exchange the refresh token for a new session.

        Raises:
            AuthenticationError: If the refresh token is rejected.
        """
        response = await self._client.post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": session.refresh_token},
        )
        if response.status_code == 400:
            raise AuthenticationError("Refresh token rejected", 400)
        refreshed = Session.from_token_response(handle_response(response).json())
        logger.debug("Refreshed session for user %s", refreshed.user_id)
        return self._store(refreshed)

    async def get_current_user_id(self) -> str | None:
        """Resolve the authenticated user.

        Refreshes an expired session first, then validates the token with
        the server.

        Returns:
            The user id, or None when nobody is (validly) signed in.
        """
        session = self.session
        if session is None:
            return None

        try:
            if session.is_expired():
                session = await self.refresh_session(session)

            response = await self._client.get(
                "/user",
                headers={"Authorization": f"Bearer {session.access_token}"},
            )
            user = handle_response(response).json()
        except AuthenticationError as e:
            logger.info("Stored session is no longer valid: %s", e)
            return None
        except httpx.RequestError as e:
            logger.debug("Could not reach auth server: %s", e)
            return None

        user_id = user.get("id")
        return str(user_id) if user_id else None

    async def sign_out(self) -> None:
        """Revoke the session server-side (best effort) and forget it locally."""
        session = self.session
        if session is not None:
            try:
                await self._client.post(
                    "/logout",
                    headers={"Authorization": f"Bearer {session.access_token}"},
                )
            except httpx.RequestError as e:
                logger.debug("Logout request failed: %s", e)
        self._sessions.clear()
        self._session = None
        logger.info("Signed out")
