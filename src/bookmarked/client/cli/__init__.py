"""Command-line interface for bookmarked.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save the Supabase project URL and anon key
- login / logout: Manage the signed-in session
- status: Show the sync status
- sync: Push the local data now
- restore: Pull the server snapshot if it is newer
- run: Keep syncing until interrupted
- delete-remote: Delete the server snapshot
"""

from __future__ import annotations

import logging

import click

from bookmarked.client.cli.auth import configure, login, logout
from bookmarked.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_preferences_path,
    get_state_db_path,
    load_config,
    load_sync_config,
    save_config,
)
from bookmarked.client.cli.sync import delete_remote, restore, run, status
from bookmarked.client.cli.sync import sync as sync_command
from bookmarked.core.log import setup_logging


@click.group()
@click.version_option(package_name="bookmarked")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
def cli(verbose: bool) -> None:
    """Bookmarked - offline-first sync for your reading data."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


# Account commands
cli.add_command(configure)
cli.add_command(login)
cli.add_command(logout)

# Sync commands
cli.add_command(status)
cli.add_command(sync_command)
cli.add_command(restore)
cli.add_command(run)
cli.add_command(delete_remote)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_preferences_path",
    "get_state_db_path",
    "load_config",
    "load_sync_config",
    "save_config",
]
