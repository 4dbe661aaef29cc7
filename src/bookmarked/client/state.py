"""Local application state for the reading tracker.

This module provides:
- LocalAppState: SQLite-backed persisted application document
- StateError: Raised when the stored document cannot be read

Architecture:
    Every list collection (books, friends, ...) is stored row-per-item in the
    ``entities`` table, ordered by position. Singletons (challenge, stats,
    profile) and sync metadata (version, last sync timestamp) live in the
    ``app_state`` key-value table as JSON.

    Every mutating operation bumps ``version`` by exactly 1 in the same
    transaction as the change. ``restore()`` replaces the whole document and
    takes its version from the snapshot instead.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bookmarked.client.models import (
    COLLECTION_MODELS,
    AppData,
    Challenge,
    Snapshot,
    UserProfile,
    UserStats,
    WireModel,
)
from bookmarked.core.types import CollectionKind, ThemeMode

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1

# app_state keys
KEY_VERSION = "version"
KEY_LAST_SYNC = "last_sync_timestamp"
KEY_CHALLENGE = "challenge"
KEY_USER_STATS = "user_stats"
KEY_USER = "user"
KEY_THEME_MODE = "theme_mode"


class StateError(Exception):
    """Exception raised when the local document is unreadable."""


class LocalAppState:
    """SQLite-based persisted application document.

    All methods are synchronous and never touch the network. Access is
    serialized with a re-entrant lock so the store can be shared with
    threads (e.g. a CLI status thread) as well as the event loop.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the local state database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode, transactions are explicit
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS entities (
                kind TEXT NOT NULL,
                position INTEGER NOT NULL,
                entity_id TEXT NOT NULL,
                payload TEXT NOT NULL,
                PRIMARY KEY (kind, position)
            );

            CREATE INDEX IF NOT EXISTS idx_entities_id ON entities(kind, entity_id);

            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block in a single transaction, rolling back on error."""
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
                self._conn.execute("COMMIT")
            except BaseException:
                # A failed COMMIT (e.g. SQLITE_BUSY) leaves the transaction open
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise

    # === Key-value helpers ===

    def _get_value(self, key: str, default: Any = None) -> Any:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM app_state WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        return json.loads(row["value"])

    def _set_value(self, conn: sqlite3.Connection, key: str, value: Any) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO app_state (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )

    def _bump_version(self, conn: sqlite3.Connection) -> int:
        version = int(self._get_value(KEY_VERSION, INITIAL_VERSION)) + 1
        self._set_value(conn, KEY_VERSION, version)
        return version

    # === Sync metadata ===

    def get_version(self) -> int:
        """Get the local mutation counter."""
        return int(self._get_value(KEY_VERSION, INITIAL_VERSION))

    def increment_version(self) -> int:
        """Bump the mutation counter without changing any data.

        Returns:
            The new version.
        """
        with self._transaction() as conn:
            return self._bump_version(conn)

    @property
    def last_sync_timestamp(self) -> int:
        """Epoch milliseconds of the last successful sync (0 = never)."""
        return int(self._get_value(KEY_LAST_SYNC, 0))

    def set_last_sync_timestamp(self, timestamp: int) -> None:
        """Record the time of the last successful sync.

        Args:
            timestamp: Epoch milliseconds.
        """
        with self._transaction() as conn:
            self._set_value(conn, KEY_LAST_SYNC, int(timestamp))

    @property
    def theme_mode(self) -> ThemeMode:
        """Display theme (local only, not part of snapshots)."""
        return ThemeMode(self._get_value(KEY_THEME_MODE, ThemeMode.LIGHT.value))

    def set_theme_mode(self, mode: ThemeMode | str) -> None:
        """Set the display theme. Does not bump the version."""
        with self._transaction() as conn:
            self._set_value(conn, KEY_THEME_MODE, ThemeMode(mode).value)

    # === Collections ===

    def _load(self, kind: CollectionKind, payload: str) -> Any:
        model = COLLECTION_MODELS[kind]
        try:
            return model.model_validate(json.loads(payload))
        except (ValueError, ValidationError) as e:
            raise StateError(f"Corrupted {kind.value} entry: {e}") from e

    def _coerce(self, kind: CollectionKind, item: WireModel | dict[str, Any]) -> WireModel:
        model = COLLECTION_MODELS[kind]
        if isinstance(item, model):
            return item
        if isinstance(item, WireModel):
            return model.model_validate(item.model_dump())
        return model.model_validate(item)

    def _insert_items(
        self,
        conn: sqlite3.Connection,
        kind: CollectionKind,
        items: Sequence[WireModel | dict[str, Any]],
    ) -> None:
        conn.execute("DELETE FROM entities WHERE kind = ?", (kind.value,))
        conn.executemany(
            "INSERT INTO entities (kind, position, entity_id, payload) VALUES (?, ?, ?, ?)",
            [
                (kind.value, position, model.id, json.dumps(model.to_wire()))  # type: ignore[attr-defined]
                for position, model in enumerate(self._coerce(kind, i) for i in items)
            ],
        )

    def list_items(self, kind: CollectionKind) -> list[Any]:
        """List all items of a collection in insertion order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload FROM entities WHERE kind = ? ORDER BY position",
                (kind.value,),
            ).fetchall()
        return [self._load(kind, row["payload"]) for row in rows]

    def get(self, kind: CollectionKind, item_id: str) -> Any | None:
        """Get a single item by id.

        Returns:
            The item, or None if not found.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT payload FROM entities WHERE kind = ? AND entity_id = ? "
                "ORDER BY position LIMIT 1",
                (kind.value, item_id),
            ).fetchone()
        if row is None:
            return None
        return self._load(kind, row["payload"])

    def add(self, kind: CollectionKind, item: WireModel | dict[str, Any]) -> Any:
        """Append an item to a collection.

        Args:
            kind: Target collection.
            item: Model instance or camelCase/snake_case dict.

        Returns:
            The stored model.
        """
        model = self._coerce(kind, item)
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM entities WHERE kind = ?",
                (kind.value,),
            ).fetchone()
            conn.execute(
                "INSERT INTO entities (kind, position, entity_id, payload) VALUES (?, ?, ?, ?)",
                (kind.value, row["next"], model.id, json.dumps(model.to_wire())),  # type: ignore[attr-defined]
            )
            self._bump_version(conn)
        logger.debug("Added %s item %s", kind.value, model.id)  # type: ignore[attr-defined]
        return model

    def update(self, kind: CollectionKind, item_id: str, **changes: Any) -> Any | None:
        """Apply a partial update to an item.

        Updating an unknown id changes nothing but still counts as a mutation.

        Returns:
            The updated model, or None if the id is unknown.

        Raises:
            ValueError: If a change names an unknown field.
        """
        model_cls = COLLECTION_MODELS[kind]
        unknown = set(changes) - set(model_cls.model_fields)
        if unknown:
            raise ValueError(f"Unknown {kind.value} fields: {', '.join(sorted(unknown))}")

        updated = None
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT position, payload FROM entities WHERE kind = ? AND entity_id = ?",
                (kind.value, item_id),
            ).fetchone()
            if row is not None:
                current = self._load(kind, row["payload"])
                updated = model_cls.model_validate({**current.model_dump(), **changes})
                conn.execute(
                    "UPDATE entities SET entity_id = ?, payload = ? "
                    "WHERE kind = ? AND position = ?",
                    (updated.id, json.dumps(updated.to_wire()), kind.value, row["position"]),
                )
            self._bump_version(conn)
        return updated

    def remove(self, kind: CollectionKind, item_id: str) -> bool:
        """Remove an item by id.

        Returns:
            True if an item was removed.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM entities WHERE kind = ? AND entity_id = ?",
                (kind.value, item_id),
            )
            self._bump_version(conn)
        return cursor.rowcount > 0

    def replace_collection(
        self,
        kind: CollectionKind,
        items: Sequence[WireModel | dict[str, Any]],
    ) -> None:
        """Clear a collection and repopulate it with the given items."""
        with self._transaction() as conn:
            self._insert_items(conn, kind, items)

    # === Singletons ===

    @property
    def challenge(self) -> Challenge | None:
        """Current reading challenge, if any."""
        data = self._get_value(KEY_CHALLENGE)
        return Challenge.model_validate(data) if data else None

    def update_challenge(self, challenge: Challenge | dict[str, Any]) -> None:
        """Replace the current reading challenge."""
        value = Challenge.model_validate(
            challenge.model_dump() if isinstance(challenge, Challenge) else challenge
        )
        with self._transaction() as conn:
            self._set_value(conn, KEY_CHALLENGE, value.to_wire())
            self._bump_version(conn)

    @property
    def user_stats(self) -> UserStats:
        """Aggregated reading statistics."""
        return UserStats.model_validate(self._get_value(KEY_USER_STATS, {}))

    def update_user_stats(self, **changes: Any) -> UserStats:
        """Apply a partial update to the user stats."""
        with self._transaction() as conn:
            stats = self._merge(UserStats, self.user_stats, changes)
            self._set_value(conn, KEY_USER_STATS, stats.to_wire())
            self._bump_version(conn)
        return stats

    @property
    def user(self) -> UserProfile:
        """Profile record."""
        return UserProfile.model_validate(self._get_value(KEY_USER, {}))

    def update_user(self, **changes: Any) -> UserProfile:
        """Apply a partial update to the profile record."""
        with self._transaction() as conn:
            profile = self._merge(UserProfile, self.user, changes)
            self._set_value(conn, KEY_USER, profile.to_wire())
            self._bump_version(conn)
        return profile

    @staticmethod
    def _merge(model_cls: type[Any], current: WireModel, changes: dict[str, Any]) -> Any:
        unknown = set(changes) - set(model_cls.model_fields)
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        return model_cls.model_validate({**current.model_dump(), **changes})

    # === Whole document ===

    def get_current_state(self) -> AppData:
        """Read the whole application document."""
        with self._lock:
            return AppData(
                books=self.list_items(CollectionKind.BOOKS),
                friends=self.list_items(CollectionKind.FRIENDS),
                activities=self.list_items(CollectionKind.ACTIVITIES),
                groups=self.list_items(CollectionKind.GROUPS),
                friend_requests=self.list_items(CollectionKind.FRIEND_REQUESTS),
                challenge=self.challenge,
                user_stats=self.user_stats,
                user=self.user,
            )

    def restore(self, snapshot: Snapshot) -> None:
        """Replace the whole document with a snapshot's data.

        Every collection is cleared and repopulated, the singletons are
        overwritten, and version / last sync timestamp are taken from the
        snapshot. Either all of it is applied or none of it.
        """
        data = snapshot.data
        with self._transaction() as conn:
            for kind in CollectionKind:
                self._insert_items(conn, kind, data.collection(kind))
            if data.challenge is not None:
                self._set_value(conn, KEY_CHALLENGE, data.challenge.to_wire())
            else:
                conn.execute("DELETE FROM app_state WHERE key = ?", (KEY_CHALLENGE,))
            self._set_value(conn, KEY_USER_STATS, data.user_stats.to_wire())
            self._set_value(conn, KEY_USER, data.user.to_wire())
            self._set_value(conn, KEY_VERSION, snapshot.version)
            self._set_value(conn, KEY_LAST_SYNC, snapshot.timestamp)
        logger.info(
            "Restored local state to version %d (%d books, %d friends)",
            snapshot.version,
            len(data.books),
            len(data.friends),
        )

    def reset(self) -> None:
        """Return every field to its initial value (e.g. on logout)."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM entities")
            conn.execute("DELETE FROM app_state")
