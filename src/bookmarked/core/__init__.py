"""Core module - Shared configuration, types and logging."""

from bookmarked.core.config import (
    DEFAULT_NETWORK_CHECK_INTERVAL,
    DEFAULT_SNAPSHOT_TABLE,
    DEFAULT_SYNC_INTERVAL,
    SyncConfig,
)
from bookmarked.core.log import LOG_FORMAT, setup_logging
from bookmarked.core.types import CollectionKind, SyncState, ThemeMode

__all__ = [
    # Config
    "DEFAULT_NETWORK_CHECK_INTERVAL",
    "DEFAULT_SNAPSHOT_TABLE",
    "DEFAULT_SYNC_INTERVAL",
    "SyncConfig",
    # Logging
    "LOG_FORMAT",
    "setup_logging",
    # Types
    "CollectionKind",
    "SyncState",
    "ThemeMode",
]
