"""Shared types for snapshot synchronization.

This module provides:
- Protocols for the engine's collaborators (state, remote, identity,
  connectivity, key-value storage)
- SyncStatus: the read-only status surface
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from bookmarked.client.models import AppData, Snapshot
from bookmarked.core.types import SyncState


class StateStore(Protocol):
    """Local application document as seen by the sync engine."""

    @property
    def last_sync_timestamp(self) -> int:
        """Epoch ms of the last successful sync."""
        ...

    def get_current_state(self) -> AppData:
        """Read the whole document."""
        ...

    def get_version(self) -> int:
        """Read the mutation counter."""
        ...

    def set_last_sync_timestamp(self, timestamp: int) -> None:
        """Record a successful sync."""
        ...

    def restore(self, snapshot: Snapshot) -> None:
        """Atomically replace the document with a snapshot."""
        ...


class RemoteStore(Protocol):
    """Remote table holding one snapshot per user."""

    async def fetch_snapshot(self, user_id: str) -> Snapshot | None:
        """Fetch the user's snapshot, None if absent."""
        ...

    async def upsert_snapshot(self, user_id: str, snapshot: Snapshot) -> None:
        """Overwrite the user's snapshot."""
        ...


class IdentityProvider(Protocol):
    """Resolves the authenticated user."""

    async def get_current_user_id(self) -> str | None:
        """Return the user id, None if unauthenticated."""
        ...


class Connectivity(Protocol):
    """Answers whether the device is online. Must not raise."""

    async def is_online(self) -> bool:
        """Return True if online."""
        ...


class KeyValueStorage(Protocol):
    """Persistent key-value storage used for the device identity."""

    async def get(self, key: str) -> str | None:
        """Get a value."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Set a value."""
        ...


@dataclass(frozen=True)
class SyncStatus:
    """Point-in-time sync status.

    Attributes:
        last_sync_timestamp: Epoch ms of the last successful sync (0 = never).
        version: Local mutation counter.
        is_syncing: Whether a push is in progress.
        is_configured: Whether remote sync is configured at all.
    """

    last_sync_timestamp: int
    version: int
    is_syncing: bool
    is_configured: bool

    @property
    def state(self) -> SyncState:
        """Coarse state for display."""
        if not self.is_configured:
            return SyncState.OFFLINE_ONLY
        return SyncState.SYNCING if self.is_syncing else SyncState.IDLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to a camelCase dictionary (JSON output)."""
        return {
            "lastSyncTimestamp": self.last_sync_timestamp,
            "version": self.version,
            "isSyncing": self.is_syncing,
            "isConfigured": self.is_configured,
        }
