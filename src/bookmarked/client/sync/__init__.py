"""Snapshot synchronization.

Architecture:
    LocalAppState ◄──► SnapshotSyncEngine ◄──► SnapshotClient (remote table)
                             │
                  SupabaseAuth · ConnectivityProbe · Preferences

Components:
- **SnapshotSyncEngine**: restore-on-start, periodic push, network-triggered
  push, forced push, status surface
- **resolve_device_id**: stable per-installation identifier
- **format_last_sync**: human-readable "last synced" text
"""

from bookmarked.client.sync.device import (
    DEVICE_ID_KEY,
    generate_device_id,
    now_ms,
    resolve_device_id,
)
from bookmarked.client.sync.engine import SnapshotSyncEngine
from bookmarked.client.sync.status import format_last_sync
from bookmarked.client.sync.types import (
    Connectivity,
    IdentityProvider,
    KeyValueStorage,
    RemoteStore,
    StateStore,
    SyncStatus,
)

__all__ = [
    # Engine
    "SnapshotSyncEngine",
    "SyncStatus",
    # Device identity
    "DEVICE_ID_KEY",
    "generate_device_id",
    "now_ms",
    "resolve_device_id",
    # Status
    "format_last_sync",
    # Collaborator protocols
    "Connectivity",
    "IdentityProvider",
    "KeyValueStorage",
    "RemoteStore",
    "StateStore",
]
