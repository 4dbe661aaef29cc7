"""Tests for core configuration classes."""

from __future__ import annotations

from bookmarked.core.config import (
    DEFAULT_NETWORK_CHECK_INTERVAL,
    DEFAULT_SYNC_INTERVAL,
    SyncConfig,
)


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields and defaults."""
        config = SyncConfig(supabase_url="https://abc.supabase.co", anon_key="anon")
        assert config.supabase_url == "https://abc.supabase.co"
        assert config.anon_key == "anon"
        assert config.timeout == 30.0
        assert config.verify_ssl is True
        assert config.sync_interval == 300.0
        assert config.network_check_interval == 30.0
        assert config.snapshot_table == "user_snapshots"

    def test_default_intervals(self) -> None:
        """Push every 5 minutes, poll the network every 30 seconds."""
        assert DEFAULT_SYNC_INTERVAL == 5 * 60
        assert DEFAULT_NETWORK_CHECK_INTERVAL == 30

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from the project URL."""
        config = SyncConfig(supabase_url="https://abc.supabase.co/", anon_key="anon")
        assert config.supabase_url == "https://abc.supabase.co"

    def test_is_configured(self) -> None:
        """Configured only when both URL and key are present."""
        assert SyncConfig(supabase_url="https://abc.supabase.co", anon_key="anon").is_configured
        assert not SyncConfig().is_configured
        assert not SyncConfig(supabase_url="https://abc.supabase.co").is_configured
        assert not SyncConfig(anon_key="anon").is_configured
        assert not SyncConfig(supabase_url="  ", anon_key="  ").is_configured

    def test_endpoint_urls(self) -> None:
        """Should derive REST, auth and health URLs."""
        config = SyncConfig(supabase_url="https://abc.supabase.co", anon_key="anon")
        assert config.rest_url == "https://abc.supabase.co/rest/v1"
        assert config.auth_url == "https://abc.supabase.co/auth/v1"
        assert config.health_url == "https://abc.supabase.co/auth/v1/health"

    def test_is_secure(self) -> None:
        """Should detect HTTPS URLs."""
        assert SyncConfig(supabase_url="https://abc.supabase.co", anon_key="k").is_secure
        assert not SyncConfig(supabase_url="http://localhost:54321", anon_key="k").is_secure

    def test_from_dict(self) -> None:
        """Should read config file keys."""
        config = SyncConfig.from_dict({
            "supabase_url": "http://localhost:54321/",
            "supabase_anon_key": "key",
            "sync_interval": 60,
            "network_check_interval": "5",
            "unknown": "ignored",
        })
        assert config.supabase_url == "http://localhost:54321"
        assert config.anon_key == "key"
        assert config.sync_interval == 60.0
        assert config.network_check_interval == 5.0
        assert config.snapshot_table == "user_snapshots"

    def test_from_empty_dict(self) -> None:
        """An empty config file means offline-only."""
        config = SyncConfig.from_dict({})
        assert not config.is_configured
        assert config.sync_interval == DEFAULT_SYNC_INTERVAL
