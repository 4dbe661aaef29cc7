"""Configuration utilities for the bookmarked CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from bookmarked.core.config import SyncConfig

HOME_ENV = "BOOKMARKED_HOME"
URL_ENV = "BOOKMARKED_SUPABASE_URL"
ANON_KEY_ENV = "BOOKMARKED_SUPABASE_ANON_KEY"


def get_config_dir() -> Path:
    """Get the configuration directory for bookmarked.

    Returns:
        Path from $BOOKMARKED_HOME, or ~/.bookmarked.
    """
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".bookmarked"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the local state database."""
    return get_config_dir() / "state.db"


def get_preferences_path() -> Path:
    """Get the path to the installation preferences file."""
    return get_config_dir() / "preferences.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def load_sync_config() -> SyncConfig:
    """Build the backend configuration.

    Values from the config file are overridden by the
    BOOKMARKED_SUPABASE_URL / BOOKMARKED_SUPABASE_ANON_KEY environment
    variables when set.
    """
    config = load_config()
    if os.environ.get(URL_ENV):
        config["supabase_url"] = os.environ[URL_ENV]
    if os.environ.get(ANON_KEY_ENV):
        config["supabase_anon_key"] = os.environ[ANON_KEY_ENV]
    return SyncConfig.from_dict(config)
