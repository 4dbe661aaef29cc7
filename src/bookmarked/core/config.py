"""Shared configuration classes for bookmarked.

This module defines the remote backend configuration used by the snapshot
client, the identity provider, the connectivity probe and the sync engine.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_SNAPSHOT_TABLE = "user_snapshots"
DEFAULT_SYNC_INTERVAL = 5 * 60.0  # seconds
DEFAULT_NETWORK_CHECK_INTERVAL = 30.0  # seconds


@dataclass
class SyncConfig:
    """Configuration for connecting to the Supabase backend.

    Attributes:
        supabase_url: Base URL of the Supabase project.
        anon_key: Public (anon) API key of the project.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        sync_interval: Seconds between periodic snapshot pushes.
        network_check_interval: Seconds between connectivity polls.
        snapshot_table: Name of the remote snapshot table.
    """

    supabase_url: str = ""
    anon_key: str = ""
    timeout: float = 30.0
    verify_ssl: bool = True
    sync_interval: float = DEFAULT_SYNC_INTERVAL
    network_check_interval: float = DEFAULT_NETWORK_CHECK_INTERVAL
    snapshot_table: str = DEFAULT_SNAPSHOT_TABLE

    def __post_init__(self) -> None:
        """Normalize the project URL."""
        self.supabase_url = self.supabase_url.strip().rstrip("/")
        self.anon_key = self.anon_key.strip()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SyncConfig:
        """Create from a config file dictionary.

        Unknown keys are ignored, missing keys fall back to defaults.
        """
        return cls(
            supabase_url=str(data.get("supabase_url") or ""),
            anon_key=str(data.get("supabase_anon_key") or ""),
            timeout=float(data.get("timeout", 30.0)),
            verify_ssl=bool(data.get("verify_ssl", True)),
            sync_interval=float(data.get("sync_interval", DEFAULT_SYNC_INTERVAL)),
            network_check_interval=float(
                data.get("network_check_interval", DEFAULT_NETWORK_CHECK_INTERVAL)
            ),
            snapshot_table=str(data.get("snapshot_table") or DEFAULT_SNAPSHOT_TABLE),
        )

    @property
    def is_configured(self) -> bool:
        """Check whether remote credentials are present.

        Returns:
            True if both the project URL and the anon key are set.
        """
        return bool(self.supabase_url) and bool(self.anon_key)

    @property
    def rest_url(self) -> str:
        """Get the PostgREST base URL."""
        return f"{self.supabase_url}/rest/v1"

    @property
    def auth_url(self) -> str:
        """Get the GoTrue (auth) base URL."""
        return f"{self.supabase_url}/auth/v1"

    @property
    def health_url(self) -> str:
        """Get the URL probed for connectivity checks."""
        return f"{self.auth_url}/health"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the project URL uses HTTPS.
        """
        return self.supabase_url.startswith("https://")
