"""
Network status tracking.

Keeps one NetworkStatus row per configured network and refreshes it on a
fixed cadence from the chain collaborator. The detector reads these rows to
skip networks that are currently unreachable.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Optional, Sequence

from models.network import NetworkConfig, NetworkStatus
from interfaces import ChainExecutionService
from utils.logger import get_logger
from utils.utcnow import utcnow

logger = get_logger(__name__)


class NetworkStatusStore:
    """Thread-safe upsert map of network name -> NetworkStatus."""

    def __init__(self, networks: Sequence[NetworkConfig] = ()):
        self._statuses: dict[str, NetworkStatus] = {}
        self._lock = threading.Lock()
        for network in networks:
            # Seed as active so the first scan does not wait on a refresh.
            self._statuses[network.name] = NetworkStatus(network=network.name, is_active=True)

    def list(self) -> list[NetworkStatus]:
        with self._lock:
            return [s.model_copy() for s in self._statuses.values()]

    def get(self, network: str) -> Optional[NetworkStatus]:
        with self._lock:
            status = self._statuses.get(network)
            return status.model_copy() if status else None

    def is_active(self, network: str) -> bool:
        # Unknown networks have never been observed as down.
        status = self.get(network)
        return status.is_active if status else True

    def upsert(self, network: str, **fields) -> NetworkStatus:
        with self._lock:
            existing = self._statuses.get(network) or NetworkStatus(network=network)
            updated = existing.model_copy(update={**fields, "last_update": utcnow()})
            self._statuses[network] = updated
            return updated.model_copy()


class NetworkMonitor:
    """Periodically refreshes NetworkStatus rows from chain health reads."""

    def __init__(
        self,
        chain: ChainExecutionService,
        statuses: NetworkStatusStore,
        networks: Sequence[NetworkConfig],
        interval_seconds: float = 10.0,
        timeout_seconds: float = 10.0,
    ):
        self._chain = chain
        self._statuses = statuses
        self._networks = list(networks)
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start background refresh loop (idempotent)."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="network-monitor")
        logger.info("Network monitor started", interval_seconds=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Network monitor stopped")

    async def refresh_once(self) -> list[NetworkStatus]:
        results = await asyncio.gather(
            *(self._refresh_network(n.name) for n in self._networks)
        )
        return list(results)

    async def _refresh_network(self, network: str) -> NetworkStatus:
        try:
            health = await asyncio.wait_for(
                self._chain.network_health(network), timeout=self._timeout
            )
        except Exception as e:
            logger.warning("Network health check failed", network=network, error=str(e))
            return self._statuses.upsert(network, is_active=False)

        if not health.is_active:
            logger.warning("Network reported inactive", network=network)
        return self._statuses.upsert(
            network,
            is_active=health.is_active,
            block_number=str(health.block_number),
            gas_price=str(health.gas_price),
        )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.refresh_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Network status refresh failed", error=str(e))
            await asyncio.sleep(self._interval)
