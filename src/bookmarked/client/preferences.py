"""Small persistent key-value storage for installation-level settings.

Holds values that must survive restarts but are not part of the synced
document, such as the device identifier. Reads and writes run in a worker
thread so callers on the event loop never block on disk I/O.
"""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path


class Preferences:
    """JSON-file backed key-value store with an async interface."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Path of the JSON file (created on first write).
        """
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the backing file."""
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        return dict(json.loads(self._path.read_text(encoding="utf-8")))

    def _get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def _set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)

    async def get(self, key: str) -> str | None:
        """Get a value.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON.
        """
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        """Set a value, replacing the file atomically.

        Raises:
            OSError: If the file cannot be written.
        """
        await asyncio.to_thread(self._set, key, value)
