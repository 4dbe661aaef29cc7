"""Sync commands for the bookmarked CLI.

Commands:
- status: Show the sync status (no network access)
- sync: Push the local data to the server now
- restore: Pull the server snapshot if it is newer
- run: Keep syncing in the foreground until interrupted
- delete-remote: Delete the server snapshot of the signed-in user
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click

from bookmarked.client.api import SnapshotClient
from bookmarked.client.auth import SupabaseAuth
from bookmarked.client.cli.config import (
    get_preferences_path,
    get_state_db_path,
    load_sync_config,
)
from bookmarked.client.network import ConnectivityProbe
from bookmarked.client.preferences import Preferences
from bookmarked.client.state import LocalAppState
from bookmarked.client.sync import SnapshotSyncEngine, format_last_sync

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Sync is not configured. Run 'bookmarked configure' first."


@asynccontextmanager
async def open_engine() -> AsyncIterator[SnapshotSyncEngine]:
    """Build a sync engine wired to the configured backend.

    Everything opened here is closed on exit.
    """
    sync_config = load_sync_config()
    state = LocalAppState(get_state_db_path())
    auth = SupabaseAuth(sync_config)
    remote = SnapshotClient(sync_config, token_provider=auth.access_token)
    probe = ConnectivityProbe(sync_config)
    engine = SnapshotSyncEngine(
        state=state,
        remote=remote,
        identity=auth,
        connectivity=probe,
        preferences=Preferences(get_preferences_path()),
        config=sync_config,
    )
    try:
        yield engine
    finally:
        await engine.close()
        await remote.close()
        await probe.close()
        await auth.close()
        state.close()


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the status as JSON.")
def status(as_json: bool) -> None:
    """Show the sync status."""

    async def _status() -> dict[str, object]:
        async with open_engine() as engine:
            current = engine.get_sync_status()
            return {
                **current.to_dict(),
                "state": current.state.value,
                "lastSyncText": format_last_sync(current.last_sync_timestamp),
            }

    info = asyncio.run(_status())
    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.echo(f"Configured:  {'yes' if info['isConfigured'] else 'no (offline-only)'}")
    click.echo(f"State:       {info['state']}")
    click.echo(f"Version:     {info['version']}")
    click.echo(f"Last sync:   {info['lastSyncText']}")


@click.command()
def sync() -> None:
    """Push the local data to the server now."""

    async def _sync() -> bool | None:
        async with open_engine() as engine:
            if not engine.is_configured:
                return None
            await engine.resolve_identity()
            return await engine.force_sync_now()

    result = asyncio.run(_sync())
    if result is None:
        click.echo(f"Error: {NOT_CONFIGURED}", err=True)
        sys.exit(1)
    if not result:
        click.echo("Sync failed (not signed in, offline, or server error). Use -v for details.", err=True)
        sys.exit(1)
    click.echo("Synced")


@click.command()
def restore() -> None:
    """Replace the local data with the server snapshot if it is newer."""

    async def _restore() -> bool | None:
        async with open_engine() as engine:
            if not engine.is_configured:
                return None
            return await engine.pull()

    result = asyncio.run(_restore())
    if result is None:
        click.echo(f"Error: {NOT_CONFIGURED}", err=True)
        sys.exit(1)
    if result:
        click.echo("Local data restored from server")
    else:
        click.echo("Local data is up to date (nothing restored)")


@click.command()
def run() -> None:
    """Keep syncing in the foreground until interrupted."""
    if not logging.getLogger("bookmarked").isEnabledFor(logging.INFO):
        logging.getLogger("bookmarked").setLevel(logging.INFO)

    async def _run() -> None:
        async with open_engine() as engine:
            await engine.initialize()
            if not engine.is_running:
                click.echo(f"{NOT_CONFIGURED} Nothing to do.")
                return

            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                # Not available on Windows, KeyboardInterrupt covers it there
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, stop.set)

            if await engine.wait_until_restored():
                click.echo("Local data restored from server")
            click.echo("Syncing in the background. Press Ctrl+C to stop.")
            await stop.wait()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run())
    click.echo("Stopped")


@click.command("delete-remote")
@click.confirmation_option(prompt="Delete your synced snapshot from the server?")
def delete_remote() -> None:
    """Delete the server snapshot of the signed-in user."""
    sync_config = load_sync_config()
    if not sync_config.is_configured:
        click.echo(f"Error: {NOT_CONFIGURED}", err=True)
        sys.exit(1)

    async def _delete() -> bool:
        auth = SupabaseAuth(sync_config)
        remote = SnapshotClient(sync_config, token_provider=auth.access_token)
        try:
            user_id = await auth.get_current_user_id()
            if not user_id:
                return False
            await remote.delete_snapshot(user_id)
            return True
        finally:
            await remote.close()
            await auth.close()

    try:
        deleted = asyncio.run(_delete())
    except Exception as e:
        click.echo(f"Error: Could not delete snapshot: {e}", err=True)
        sys.exit(1)
    if not deleted:
        click.echo("Error: Not signed in. Run 'bookmarked login' first.", err=True)
        sys.exit(1)
    click.echo("Remote snapshot deleted")
