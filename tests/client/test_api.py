"""Tests for the remote snapshot HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from bookmarked.client.api import (
    APIError,
    AuthenticationError,
    NotFoundError,
    RemoteSnapshot,
    SnapshotClient,
)
from bookmarked.client.models import AppData, Book, Snapshot
from bookmarked.core.config import SyncConfig

BASE = "https://test.supabase.co/rest/v1/user_snapshots"
FETCH_URL = f"{BASE}?select=user_id,snapshot,updated_at&user_id=eq.user-1&limit=1"


def make_config() -> SyncConfig:
    """Create a SyncConfig for testing."""
    return SyncConfig(supabase_url="https://test.supabase.co", anon_key="anon-key")


def make_snapshot(version: int = 4) -> Snapshot:
    """Create a small snapshot."""
    return Snapshot(
        data=AppData(books=[Book(id="b1", title="Dune")]),
        version=version,
        timestamp=1_700_000_000_000,
        device_id="device-1-abc",
    )


class TestRemoteSnapshot:
    """Tests for RemoteSnapshot dataclass."""

    def test_from_dict(self) -> None:
        """Should parse a table row."""
        row = {
            "user_id": "user-1",
            "snapshot": make_snapshot().to_wire(),
            "updated_at": "2025-01-02T15:30:00+00:00",
        }

        record = RemoteSnapshot.from_dict(row)

        assert record.user_id == "user-1"
        assert record.snapshot.version == 4
        assert record.snapshot.data.books[0].title == "Dune"
        assert record.updated_at is not None
        assert record.updated_at.year == 2025

    def test_from_dict_without_updated_at(self) -> None:
        """updated_at is optional."""
        record = RemoteSnapshot.from_dict(
            {"user_id": "user-1", "snapshot": make_snapshot().to_wire()}
        )
        assert record.updated_at is None


class TestSnapshotClient:
    """Tests for SnapshotClient requests."""

    @pytest.mark.asyncio
    async def test_fetch_snapshot(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the stored snapshot."""
        httpx_mock.add_response(
            url=FETCH_URL,
            json=[{
                "user_id": "user-1",
                "snapshot": make_snapshot(7).to_wire(),
                "updated_at": "2025-01-02T15:30:00+00:00",
            }],
        )

        async with SnapshotClient(make_config()) as client:
            snapshot = await client.fetch_snapshot("user-1")

        assert snapshot is not None
        assert snapshot.version == 7
        assert snapshot.device_id == "device-1-abc"

    @pytest.mark.asyncio
    async def test_fetch_sends_credentials(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the anon key and the user's bearer token."""
        httpx_mock.add_response(url=FETCH_URL, json=[])

        async with SnapshotClient(make_config(), token_provider=lambda: "jwt-123") as client:
            await client.fetch_snapshot("user-1")

        request = httpx_mock.get_request()
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer jwt-123"

    @pytest.mark.asyncio
    async def test_fetch_without_token_uses_anon_key(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Without a session the anon key is the bearer."""
        httpx_mock.add_response(url=FETCH_URL, json=[])

        async with SnapshotClient(make_config(), token_provider=lambda: None) as client:
            await client.fetch_snapshot("user-1")

        assert httpx_mock.get_request().headers["Authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_fetch_no_record(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A user who never pushed has no snapshot."""
        httpx_mock.add_response(url=FETCH_URL, json=[])

        async with SnapshotClient(make_config()) as client:
            assert await client.fetch_snapshot("user-1") is None

    @pytest.mark.asyncio
    async def test_fetch_null_snapshot(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A row with a null snapshot counts as absent."""
        httpx_mock.add_response(
            url=FETCH_URL, json=[{"user_id": "user-1", "snapshot": None}]
        )

        async with SnapshotClient(make_config()) as client:
            assert await client.fetch_snapshot("user-1") is None

    @pytest.mark.asyncio
    async def test_fetch_malformed_snapshot(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A snapshot without a version is an API error."""
        httpx_mock.add_response(
            url=FETCH_URL,
            json=[{"user_id": "user-1", "snapshot": {"data": {}, "timestamp": 1}}],
        )

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(APIError, match="Malformed"):
                await client.fetch_snapshot("user-1")

    @pytest.mark.asyncio
    async def test_fetch_unauthorized(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthenticationError on 401."""
        httpx_mock.add_response(
            url=FETCH_URL, status_code=401, json={"message": "JWT expired"}
        )

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(AuthenticationError, match="JWT expired") as exc_info:
                await client.fetch_snapshot("user-1")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_fetch_not_found(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A missing table is a NotFoundError."""
        httpx_mock.add_response(url=FETCH_URL, status_code=404, json={})

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(NotFoundError):
                await client.fetch_snapshot("user-1")

    @pytest.mark.asyncio
    async def test_fetch_server_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise APIError with the status code."""
        httpx_mock.add_response(url=FETCH_URL, status_code=500, text="boom")

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(APIError) as exc_info:
                await client.fetch_snapshot("user-1")

        assert exc_info.value.status_code == 500
        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fetch_transport_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Transport errors propagate to the caller."""
        httpx_mock.add_exception(httpx.ConnectError("unreachable"))

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(httpx.ConnectError):
                await client.fetch_snapshot("user-1")

    @pytest.mark.asyncio
    async def test_upsert_snapshot(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should upsert one row keyed by user_id."""
        httpx_mock.add_response(
            url=f"{BASE}?on_conflict=user_id", method="POST", status_code=201
        )

        async with SnapshotClient(make_config(), token_provider=lambda: "jwt-123") as client:
            await client.upsert_snapshot("user-1", make_snapshot(9))

        request = httpx_mock.get_request()
        body = json.loads(request.content)
        assert body["user_id"] == "user-1"
        assert body["snapshot"]["version"] == 9
        assert body["snapshot"]["deviceId"] == "device-1-abc"
        assert body["snapshot"]["data"]["books"][0]["title"] == "Dune"
        assert "updated_at" in body
        assert "resolution=merge-duplicates" in request.headers["Prefer"]
        assert request.headers["Authorization"] == "Bearer jwt-123"

    @pytest.mark.asyncio
    async def test_upsert_rejected(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Row-level security violations surface as AuthenticationError."""
        httpx_mock.add_response(
            url=f"{BASE}?on_conflict=user_id",
            method="POST",
            status_code=403,
            json={"message": "new row violates row-level security policy"},
        )

        async with SnapshotClient(make_config()) as client:
            with pytest.raises(AuthenticationError, match="row-level security"):
                await client.upsert_snapshot("user-1", make_snapshot())

    @pytest.mark.asyncio
    async def test_delete_snapshot(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should delete the user's row."""
        httpx_mock.add_response(
            url=f"{BASE}?user_id=eq.user-1", method="DELETE", status_code=204
        )

        async with SnapshotClient(make_config()) as client:
            await client.delete_snapshot("user-1")

        assert httpx_mock.get_request().method == "DELETE"
