"""Stable per-installation device identifier."""

from __future__ import annotations

import logging
import secrets
import string
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bookmarked.client.sync.types import KeyValueStorage

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "bookmarked-device-id"

_BASE36 = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_device_id(timestamp_ms: int | None = None) -> str:
    """Generate a new ``device-<epoch ms>-<9 base36 chars>`` identifier."""
    stamp = now_ms() if timestamp_ms is None else timestamp_ms
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"device-{stamp}-{suffix}"


async def resolve_device_id(storage: KeyValueStorage) -> str:
    """Read the device id, creating and persisting it on first use.

    Never raises: if storage fails, a timestamp-only id is returned and
    nothing is persisted.

    Args:
        storage: Persistent key-value storage.

    Returns:
        The device identifier.
    """
    try:
        device_id = await storage.get(DEVICE_ID_KEY)
        if not device_id:
            device_id = generate_device_id()
            await storage.set(DEVICE_ID_KEY, device_id)
            logger.info("Generated new device id %s", device_id)
        return device_id
    except Exception as e:
        logger.error("Error getting device id: %s", e)
        return f"device-{now_ms()}"
