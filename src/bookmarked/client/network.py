"""Connectivity probe.

Answers "is the device online" by reaching the backend health endpoint.
"""

from __future__ import annotations

import logging

import httpx

from bookmarked.core.config import SyncConfig

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5.0  # seconds


class ConnectivityProbe:
    """Checks whether the backend is reachable."""

    def __init__(
        self,
        config: SyncConfig,
        timeout: float = PROBE_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = config.health_url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=config.verify_ssl,
            headers={"apikey": config.anon_key},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def is_online(self) -> bool:
        """Check connectivity.

        Never raises: any failure counts as offline.

        Returns:
            True if the health endpoint answered with a 2xx status.
        """
        try:
            response = await self._client.get(self._url)
        except Exception as e:
            logger.debug("Connectivity check failed: %s", e)
            return False
        return response.is_success
