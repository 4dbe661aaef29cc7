"""Snapshot sync engine.

This module provides:
- SnapshotSyncEngine: keeps the local document and the remote snapshot table
  in step with whole-snapshot, last-writer-wins semantics

Triggers:
    initialize() ──► pull (once, in the background)
    periodic loop ──► push every ``sync_interval`` seconds
    network loop  ──► push when the probe reports online and no push is running
    force_sync_now() ──► push

Conflict policy:
    pull adopts the remote snapshot only if its version is strictly greater
    than the local version; push always overwrites the remote snapshot.

All pushes share one busy flag. The flag is checked and set with no await
in between, so on a single event loop two pushes never overlap; a push that
finds the engine busy returns False instead of queueing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from bookmarked.client.models import Snapshot
from bookmarked.client.sync.device import now_ms, resolve_device_id
from bookmarked.client.sync.types import SyncStatus

if TYPE_CHECKING:
    from bookmarked.client.sync.types import (
        Connectivity,
        IdentityProvider,
        KeyValueStorage,
        RemoteStore,
        StateStore,
    )
    from bookmarked.core.config import SyncConfig

logger = logging.getLogger(__name__)


class SnapshotSyncEngine:
    """Coordinates snapshot synchronization between local state and the server.

    Construct once at startup and hand the instance to whatever needs to
    trigger or inspect sync (bootstrap code, CLI commands, settings).

    Usage:
        engine = SnapshotSyncEngine(state, remote, auth, probe, prefs, config)
        await engine.initialize()
        ...
        ok = await engine.force_sync_now()
        ...
        await engine.close()
    """

    def __init__(
        self,
        state: StateStore,
        remote: RemoteStore,
        identity: IdentityProvider,
        connectivity: Connectivity,
        preferences: KeyValueStorage,
        config: SyncConfig,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the sync engine.

        Args:
            state: Local application document.
            remote: Remote snapshot table client.
            identity: Resolves the authenticated user.
            connectivity: Online/offline probe.
            preferences: Persistent key-value storage for the device id.
            config: Backend configuration (also holds the loop intervals).
            clock: Returns the current wall-clock time in epoch ms.
        """
        self._state = state
        self._remote = remote
        self._identity = identity
        self._connectivity = connectivity
        self._preferences = preferences
        self._config = config
        self._clock = clock

        self._device_id: str | None = None
        self._is_syncing = False

        self._periodic_task: asyncio.Task[None] | None = None
        self._network_task: asyncio.Task[None] | None = None
        self._restore_task: asyncio.Task[bool] | None = None
        self._restore_tasks: set[asyncio.Task[bool]] = set()
        self._push_tasks: set[asyncio.Task[bool]] = set()

    @property
    def device_id(self) -> str | None:
        """Device identifier (None until initialize())."""
        return self._device_id

    @property
    def is_syncing(self) -> bool:
        """Whether a push is in progress."""
        return self._is_syncing

    @property
    def is_configured(self) -> bool:
        """Whether remote sync is configured."""
        return self._config.is_configured

    @property
    def is_running(self) -> bool:
        """Whether the periodic or network loop is active."""
        return any(
            task is not None and not task.done()
            for task in (self._periodic_task, self._network_task)
        )

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Start the engine.

        Resolves the device id, then (if configured) schedules one restore
        from the server without waiting for it and starts the periodic and
        network loops. Calling it again restarts the loops.
        """
        logger.info("Initializing sync engine...")
        self.stop_sync()

        await self.resolve_identity()

        if not self.is_configured:
            logger.info("Sync not configured. Running in offline-only mode.")
            return

        self._restore_task = asyncio.create_task(self.pull(), name="bookmarked-restore")
        # A restore from an earlier initialize() may still be running
        self._restore_tasks.add(self._restore_task)
        self._restore_task.add_done_callback(self._restore_tasks.discard)
        self._periodic_task = asyncio.create_task(
            self._periodic_loop(), name="bookmarked-periodic-sync"
        )
        self._network_task = asyncio.create_task(
            self._network_loop(), name="bookmarked-network-listener"
        )
        logger.info(
            "Periodic sync started (every %.0fs, network check every %.0fs)",
            self._config.sync_interval,
            self._config.network_check_interval,
        )

    async def resolve_identity(self) -> str:
        """Load (or create) the device id used to tag pushed snapshots.

        Called by initialize(); one-shot callers that push without starting
        the loops call it directly.
        """
        self._device_id = await resolve_device_id(self._preferences)
        return self._device_id

    def stop_sync(self) -> None:
        """Stop the periodic and network loops.

        Safe to call when nothing is running. A push already in flight runs
        to completion; it is just not rescheduled.
        """
        stopped = False
        for task in (self._periodic_task, self._network_task):
            if task is not None and not task.done():
                task.cancel()
                stopped = True
        self._periodic_task = None
        self._network_task = None
        if stopped:
            logger.info("Periodic sync stopped")

    async def close(self) -> None:
        """Stop the loops and wait for in-flight operations to finish."""
        loops = [t for t in (self._periodic_task, self._network_task) if t is not None]
        self.stop_sync()
        pending = [*loops, *self._push_tasks, *self._restore_tasks]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def wait_until_restored(self) -> bool:
        """Wait for the startup restore scheduled by initialize().

        Returns:
            The restore result, or False if no restore was scheduled.
        """
        if self._restore_task is None:
            return False
        return await self._restore_task

    async def force_sync_now(self) -> bool:
        """Push immediately, regardless of the loops.

        Returns:
            True if the snapshot was uploaded, False otherwise (including
            when another push is already running).
        """
        logger.info("Force sync requested")
        return await self.push()

    def get_sync_status(self) -> SyncStatus:
        """Read the current status without touching the network."""
        return SyncStatus(
            last_sync_timestamp=self._state.last_sync_timestamp,
            version=self._state.get_version(),
            is_syncing=self._is_syncing,
            is_configured=self.is_configured,
        )

    # === Loops ===

    def _spawn_push(self) -> None:
        """Run a push in its own task so stopping a loop never cancels it."""
        task = asyncio.create_task(self.push(), name="bookmarked-push")
        self._push_tasks.add(task)
        task.add_done_callback(self._push_tasks.discard)

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.sync_interval)
            self._spawn_push()

    async def _network_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.network_check_interval)
            try:
                online = await self._connectivity.is_online()
            except Exception as e:
                logger.error("Error checking network state: %s", e)
                continue
            if online and not self._is_syncing:
                logger.info("Network available, attempting sync...")
                self._spawn_push()

    # === Pull ===

    async def pull(self) -> bool:
        """Restore the local document from the server if the server is ahead.

        Returns:
            True if local state was replaced, False otherwise. Never raises.
        """
        if not self.is_configured:
            logger.info("Sync not configured, skipping restore")
            return False

        try:
            logger.info("Attempting to restore from server...")

            user_id = await self._identity.get_current_user_id()
            if not user_id:
                logger.info("No authenticated user, skipping restore")
                return False

            if not await self._connectivity.is_online():
                logger.info("Offline, skipping restore")
                return False

            snapshot = await self._remote.fetch_snapshot(user_id)
            if snapshot is None:
                logger.info("No snapshot found on server")
                return False

            local_version = self._state.get_version()
            if snapshot.version <= local_version:
                logger.info(
                    "Local version %d is up to date (remote version %d)",
                    local_version,
                    snapshot.version,
                )
                return False

            logger.info(
                "Restoring from server (remote version %d > local version %d, device %s)",
                snapshot.version,
                local_version,
                snapshot.device_id,
            )
            self._state.restore(snapshot)
            logger.info("Successfully restored from server")
            return True

        except Exception as e:
            logger.error("Error restoring from server: %s", e)
            return False

    # === Push ===

    def _build_snapshot(self) -> Snapshot:
        return Snapshot(
            data=self._state.get_current_state(),
            version=self._state.get_version(),
            timestamp=self._clock(),
            device_id=self._device_id or "unknown",
        )

    async def push(self) -> bool:
        """Upload the current local document, overwriting the server copy.

        Returns:
            True if the snapshot was uploaded, False otherwise. Never raises.
        """
        if not self.is_configured:
            logger.info("Sync not configured, skipping sync")
            return False

        if self._is_syncing:
            logger.info("Sync already in progress, skipping")
            return False

        self._is_syncing = True
        try:
            user_id = await self._identity.get_current_user_id()
            if not user_id:
                logger.info("No authenticated user, skipping sync")
                return False

            if not await self._connectivity.is_online():
                logger.info("Offline, skipping sync")
                return False

            snapshot = self._build_snapshot()
            logger.info("Syncing to server (version %d)...", snapshot.version)
            await self._remote.upsert_snapshot(user_id, snapshot)

            self._state.set_last_sync_timestamp(snapshot.timestamp)
            logger.info("Successfully synced to server")
            return True

        except Exception as e:
            logger.error("Error syncing to server: %s", e)
            return False
        finally:
            self._is_syncing = False
