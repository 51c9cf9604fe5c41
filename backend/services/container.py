"""
Service container.

Builds every long-lived service once at startup and owns their start/stop
order. Routes reach services through ``request.app.state.services``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from config import configured_networks, settings
from interfaces import ChainExecutionService, PriceQuoteProvider
from models.network import NetworkConfig
from services.broadcaster import Broadcaster
from services.execution import ExecutionService
from services.network_monitor import NetworkMonitor, NetworkStatusStore
from services.opportunity_detector import OpportunityDetector
from services.opportunity_store import OpportunityStore
from services.settings_store import TradingSettingsStore
from services.trade_ledger import TradeLedger
from utils.logger import get_logger

logger = get_logger("container")


@dataclass
class ServiceContainer:
    networks: list[NetworkConfig]
    chain: ChainExecutionService
    source_a: PriceQuoteProvider
    source_b: PriceQuoteProvider
    store: OpportunityStore = field(default_factory=OpportunityStore)
    ledger: TradeLedger = field(default_factory=TradeLedger)
    trading_settings: TradingSettingsStore = field(default_factory=TradingSettingsStore)
    statuses: Optional[NetworkStatusStore] = None
    detector: Optional[OpportunityDetector] = None
    monitor: Optional[NetworkMonitor] = None
    broadcaster: Optional[Broadcaster] = None
    execution: Optional[ExecutionService] = None

    def __post_init__(self):
        if self.statuses is None:
            self.statuses = NetworkStatusStore(self.networks)
        if self.detector is None:
            self.detector = OpportunityDetector(
                self.store, self.statuses, self.source_a, self.source_b, self.networks
            )
        if self.monitor is None:
            self.monitor = NetworkMonitor(
                self.chain,
                self.statuses,
                self.networks,
                interval_seconds=settings.NETWORK_REFRESH_INTERVAL_SECONDS,
                timeout_seconds=settings.QUOTE_TIMEOUT_SECONDS,
            )
        if self.broadcaster is None:
            self.broadcaster = Broadcaster(self.store, self.ledger, self.statuses, self.chain)
        if self.execution is None:
            self.execution = ExecutionService(
                self.store,
                self.ledger,
                self.chain,
                on_trade_executed=self.broadcaster.publish_trade_executed,
            )

    @classmethod
    def build(cls, networks: Optional[Sequence[NetworkConfig]] = None) -> "ServiceContainer":
        """Wire the production collaborators: 1inch, 0x and the web3 adapter."""
        from services.chain_execution import Web3ChainExecutionService
        from services.quote_providers import OneInchQuoteProvider, ZeroXQuoteProvider

        networks = list(networks) if networks is not None else configured_networks()
        return cls(
            networks=networks,
            chain=Web3ChainExecutionService(networks),
            source_a=OneInchQuoteProvider(networks),
            source_b=ZeroXQuoteProvider(networks),
        )

    async def start(self) -> None:
        # Refresh network health first so the first scan sees real state.
        await self.monitor.refresh_once()
        await self.monitor.start()
        await self.detector.start()
        await self.broadcaster.start()
        logger.info("Services started", networks=[n.name for n in self.networks])

    async def stop(self) -> None:
        await self.broadcaster.stop()
        await self.detector.stop()
        await self.monitor.stop()
        for collaborator in (self.source_a, self.source_b, self.chain):
            close = getattr(collaborator, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning("Failed to close collaborator", error=str(e))
        logger.info("Services stopped")
