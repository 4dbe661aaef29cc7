"""Account commands for the bookmarked CLI.

Commands:
- configure: Save the Supabase project URL and anon key
- login: Sign in with email and password
- logout: Sign out and clear local data
"""

from __future__ import annotations

import asyncio
import sys

import click
import httpx

from bookmarked.client.api import APIError, AuthenticationError
from bookmarked.client.auth import Session, SupabaseAuth
from bookmarked.client.cli.config import (
    get_config_file,
    get_state_db_path,
    load_config,
    load_sync_config,
    save_config,
)
from bookmarked.client.state import LocalAppState


@click.command()
@click.option("--url", prompt="Supabase project URL", help="Supabase project URL.")
@click.option("--anon-key", prompt="Supabase anon key", help="Supabase anon (public) key.")
def configure(url: str, anon_key: str) -> None:
    """Save the remote backend settings."""
    config = load_config()
    config["supabase_url"] = url.strip().rstrip("/")
    config["supabase_anon_key"] = anon_key.strip()
    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")


@click.command()
@click.option("--email", prompt=True, help="Account email.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
def login(email: str, password: str) -> None:
    """Sign in to the sync backend."""
    sync_config = load_sync_config()
    if not sync_config.is_configured:
        click.echo("Error: Sync is not configured. Run 'bookmarked configure' first.", err=True)
        sys.exit(1)

    async def _login() -> Session:
        auth = SupabaseAuth(sync_config)
        try:
            return await auth.sign_in_with_password(email, password)
        finally:
            await auth.close()

    try:
        session = asyncio.run(_login())
    except AuthenticationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (APIError, httpx.RequestError) as e:
        click.echo(f"Error: Could not sign in: {e}", err=True)
        sys.exit(1)

    click.echo(f"Signed in as {session.email or session.user_id}")


@click.command()
@click.option("--keep-data", is_flag=True, help="Keep the local reading data.")
def logout(keep_data: bool) -> None:
    """Sign out and reset the local data."""
    sync_config = load_sync_config()

    async def _logout() -> None:
        auth = SupabaseAuth(sync_config)
        try:
            await auth.sign_out()
        finally:
            await auth.close()

    if sync_config.is_configured:
        asyncio.run(_logout())

    if not keep_data:
        state = LocalAppState(get_state_db_path())
        try:
            state.reset()
        finally:
            state.close()

    click.echo("Signed out")
