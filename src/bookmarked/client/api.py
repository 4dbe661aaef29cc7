"""HTTP client for the remote snapshot table.

This module provides:
- SnapshotClient: async client for the Supabase PostgREST ``user_snapshots`` table
- RemoteSnapshot: a stored row (user id + snapshot + update time)
- APIError and subclasses raised on error responses

The table holds at most one row per user; every upsert overwrites it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from bookmarked.client.models import Snapshot
from bookmarked.core.config import SyncConfig

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed or token rejected."""


class NotFoundError(APIError):
    """Resource not found."""


def _error_detail(response: httpx.Response, default: str) -> str:
    """Extract an error message from a Supabase error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or default
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return default


def handle_response(response: httpx.Response) -> httpx.Response:
    """Raise the matching APIError for an error response.

    Returns:
        The response unchanged when it is successful.
    """
    if response.status_code in (401, 403):
        raise AuthenticationError(
            _error_detail(response, "Invalid or expired token"), response.status_code
        )
    if response.status_code == 404:
        raise NotFoundError(_error_detail(response, "Resource not found"), 404)
    if response.status_code >= 400:
        raise APIError(_error_detail(response, "Unknown error"), response.status_code)
    return response


@dataclass
class RemoteSnapshot:
    """A row of the remote snapshot table."""

    user_id: str
    snapshot: Snapshot
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteSnapshot:
        """Create from an API response row."""
        return cls(
            user_id=data["user_id"],
            snapshot=Snapshot.from_wire(data["snapshot"]),
            updated_at=(
                datetime.fromisoformat(data["updated_at"])
                if data.get("updated_at")
                else None
            ),
        )


class SnapshotClient:
    """Async HTTP client for the remote snapshot store."""

    def __init__(
        self,
        config: SyncConfig,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the snapshot client.

        Args:
            config: Backend configuration.
            token_provider: Returns the signed-in user's access token, or None
                to fall back to the anon key.
            transport: Optional custom transport (used by tests).
        """
        self._config = config
        self._token_provider = token_provider
        self._table = config.snapshot_table
        self._client = httpx.AsyncClient(
            base_url=config.rest_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.anon_key},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SnapshotClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return {"Authorization": f"Bearer {token or self._config.anon_key}"}

    async def fetch_snapshot(self, user_id: str) -> Snapshot | None:
        """Fetch the stored snapshot of a user.

        Args:
            user_id: Authenticated user id.

        Returns:
            The snapshot, or None if the user has never pushed one.

        Raises:
            APIError: On an error response or an unparseable snapshot.
            httpx.RequestError: On transport errors.
        """
        record = await self.fetch_record(user_id)
        return record.snapshot if record else None

    async def fetch_record(self, user_id: str) -> RemoteSnapshot | None:
        """Fetch the full stored row of a user, or None if absent."""
        response = handle_response(
            await self._client.get(
                f"/{self._table}",
                params={
                    "select": "user_id,snapshot,updated_at",
                    "user_id": f"eq.{user_id}",
                    "limit": "1",
                },
                headers=self._auth_headers(),
            )
        )
        rows = response.json()
        if not rows or not rows[0].get("snapshot"):
            return None
        try:
            return RemoteSnapshot.from_dict(rows[0])
        except (KeyError, ValidationError) as e:
            raise APIError(f"Malformed snapshot for user {user_id}: {e}") from e

    async def upsert_snapshot(self, user_id: str, snapshot: Snapshot) -> None:
        """Insert or overwrite the stored snapshot of a user.

        No version check is made: the last writer wins.

        Raises:
            APIError: On an error response.
            httpx.RequestError: On transport errors.
        """
        handle_response(
            await self._client.post(
                f"/{self._table}",
                params={"on_conflict": "user_id"},
                json={
                    "user_id": user_id,
                    "snapshot": snapshot.to_wire(),
                    "updated_at": datetime.now(UTC).isoformat(),
                },
                headers={
                    **self._auth_headers(),
                    "Prefer": "resolution=merge-duplicates,return=minimal",
                },
            )
        )
        logger.debug("Upserted snapshot version %d for user %s", snapshot.version, user_id)

    async def delete_snapshot(self, user_id: str) -> None:
        """Delete the stored snapshot of a user (account removal).

        Deleting a user without a snapshot is not an error.
        """
        handle_response(
            await self._client.delete(
                f"/{self._table}",
                params={"user_id": f"eq.{user_id}"},
                headers=self._auth_headers(),
            )
        )
        logger.info("Deleted remote snapshot for user %s", user_id)
