"""Shared types for bookmarked."""

from __future__ import annotations

from enum import Enum


class CollectionKind(str, Enum):
    """List collections held by the local application document.

    The value is the snake_case field name on ``AppData``.
    """

    BOOKS = "books"
    FRIENDS = "friends"
    ACTIVITIES = "activities"
    GROUPS = "groups"
    FRIEND_REQUESTS = "friend_requests"


class SyncState(str, Enum):
    """Coarse sync state, derived from the engine status for display."""

    IDLE = "idle"
    SYNCING = "syncing"
    OFFLINE_ONLY = "offline_only"


class ThemeMode(str, Enum):
    """Display theme persisted with the local document (never synced)."""

    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"
