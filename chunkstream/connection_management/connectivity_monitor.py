"""Connectivity monitor for network-aware uploads.

This module provides a monitor that periodically probes a URL and drives a
ConnectivityGate when the connection state changes.
"""

import asyncio
import logging

import aiohttp

from chunkstream.connection_management.connectivity_gate import ConnectivityGate
from chunkstream.const import (
    CONNECTIVITY_CHECK_INTERVAL_SECS,
    CONNECTIVITY_CHECK_TIMEOUT_SECS,
)

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Probes a URL in the background and reports results to a gate."""

    def __init__(
        self,
        gate: ConnectivityGate,
        check_url: str,
        client_session: aiohttp.ClientSession | None = None,
        timeout: float = CONNECTIVITY_CHECK_TIMEOUT_SECS,
        check_interval: float = CONNECTIVITY_CHECK_INTERVAL_SECS,
    ) -> None:
        """Initialize the connectivity monitor.

        Args:
            gate: Gate to update when connectivity changes
            check_url: URL probed with a HEAD request
            client_session: aiohttp ClientSession for probes, created on
                start if not given
            timeout: Timeout in seconds for connectivity checks
            check_interval: Seconds between connectivity checks
        """
        self._gate = gate
        self._check_url = check_url
        self._client_session = client_session
        self._owns_session = client_session is None
        self._timeout = timeout
        self._check_interval = check_interval
        self._stopped = False
        self._check_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the connectivity check loop."""
        if self._client_session is None:
            self._client_session = aiohttp.ClientSession()
        self._stopped = False
        self._check_task = asyncio.create_task(self._check_loop())
        logger.info("ConnectivityMonitor started for %s", self._check_url)

    async def stop(self) -> None:
        """Stop the connectivity check loop."""
        self._stopped = True
        if self._check_task:
            self._check_task.cancel()
            try:
                await self._check_task
            except asyncio.CancelledError:
                pass
            self._check_task = None
        if self._owns_session and self._client_session is not None:
            await self._client_session.close()
            self._client_session = None
        logger.info("ConnectivityMonitor stopped")

    async def _check_loop(self) -> None:
        """Periodically check connectivity and update the gate."""
        while not self._stopped:
            try:
                if await self._check_connectivity():
                    self._gate.set_online()
                else:
                    self._gate.set_offline()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in connectivity check loop: {e}", exc_info=True)
            await asyncio.sleep(self._check_interval)

    async def _check_connectivity(self) -> bool:
        """Check if the probe URL is reachable.

        Returns:
            True if connected, False otherwise
        """
        if self._client_session is None:
            return False
        try:
            async with self._client_session.head(
                self._check_url,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                return response.status < 500

        except (aiohttp.ClientError, asyncio.TimeoutError):
            return False
