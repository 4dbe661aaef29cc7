"""Human-readable sync status."""

from __future__ import annotations

from bookmarked.client.sync.device import now_ms

MINUTE_MS = 60_000


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def format_last_sync(last_sync_timestamp: int, now: int | None = None) -> str:
    """Describe how long ago the last sync happened.

    Args:
        last_sync_timestamp: Epoch ms of the last sync (0 = never).
        now: Current epoch ms (defaults to the wall clock).

    Returns:
        "Never synced", "Just now", or "N minute(s)/hour(s)/day(s) ago".
    """
    if not last_sync_timestamp:
        return "Never synced"

    now = now_ms() if now is None else now
    minutes = max(now - last_sync_timestamp, 0) // MINUTE_MS
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    if minutes > 0:
        return _plural(minutes, "minute")
    return "Just now"
