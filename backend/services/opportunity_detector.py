"""
Opportunity detector.

Every cycle, for each active network and each configured token pair, asks
both quote sources what one unit of token_a is worth in token_b. When the
two prices diverge by at least MIN_PROFIT_PERCENT the spread is recorded in
the OpportunityStore with a short TTL.

Pairs are scanned concurrently; a failure in one pair or network is logged
and never aborts the rest of the cycle.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional, Sequence

from config import settings
from interfaces import PriceQuoteProvider, Quote, QuoteUnavailableError
from models.network import NetworkConfig, TokenPairConfig
from models.opportunity import ArbitrageOpportunity, OpportunityCreate
from services.network_monitor import NetworkStatusStore
from services.opportunity_store import OpportunityStore
from utils.logger import scanner_logger as logger
from utils.utcnow import utcnow


class OpportunityDetector:
    def __init__(
        self,
        store: OpportunityStore,
        statuses: NetworkStatusStore,
        source_a: PriceQuoteProvider,
        source_b: PriceQuoteProvider,
        networks: Sequence[NetworkConfig],
        min_profit_percent: Optional[float] = None,
        interval_seconds: Optional[float] = None,
        ttl_seconds: Optional[float] = None,
        quote_timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._statuses = statuses
        self._source_a = source_a
        self._source_b = source_b
        self._networks = list(networks)
        self._min_profit_percent = (
            settings.MIN_PROFIT_PERCENT if min_profit_percent is None else min_profit_percent
        )
        self._interval = interval_seconds or settings.SCAN_INTERVAL_SECONDS
        self._ttl = timedelta(seconds=ttl_seconds or settings.OPPORTUNITY_TTL_SECONDS)
        self._quote_timeout = quote_timeout_seconds or settings.QUOTE_TIMEOUT_SECONDS
        self._retention = timedelta(minutes=settings.OPPORTUNITY_RETENTION_MINUTES)

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._scan_in_flight = False
        self._last_scan: Optional[datetime] = None
        self._scan_count = 0
        self._last_opportunity_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def status(self) -> dict:
        return {
            "is_running": self._running,
            "last_scan": self._last_scan.isoformat() if self._last_scan else None,
            "scan_count": self._scan_count,
            "last_opportunity_count": self._last_opportunity_count,
            "interval_seconds": self._interval,
            "networks": [n.name for n in self._networks],
        }

    async def start(self) -> None:
        """Scan once immediately, then every interval (idempotent)."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="opportunity-detector")
        logger.info("Opportunity detector started", interval_seconds=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Opportunity detector stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.scan()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Scan cycle failed", error=str(e))
            await asyncio.sleep(self._interval)

    async def scan(self) -> list[ArbitrageOpportunity]:
        """Run one detection cycle. Returns the opportunities it created.

        A call made while another cycle is still running returns an empty
        list without scanning.
        """
        if self._scan_in_flight:
            logger.debug("Scan already in progress, skipping")
            return []
        self._scan_in_flight = True
        try:
            jobs = []
            for network in self._networks:
                if not self._statuses.is_active(network.name):
                    logger.debug("Skipping inactive network", network=network.name)
                    continue
                for pair in network.token_pairs:
                    jobs.append(self._scan_pair(network.name, pair))

            results = await asyncio.gather(*jobs, return_exceptions=True)
            created: list[ArbitrageOpportunity] = []
            for result in results:
                if isinstance(result, ArbitrageOpportunity):
                    created.append(result)
                elif isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                    logger.error("Pair scan failed", error=str(result))

            self._store.prune(self._retention)

            self._last_scan = utcnow()
            self._scan_count += 1
            self._last_opportunity_count = len(created)
            return created
        finally:
            self._scan_in_flight = False

    async def _quote(self, source: PriceQuoteProvider, network: str, pair: TokenPairConfig) -> Quote:
        return await asyncio.wait_for(
            source.quote(
                network,
                pair.token_a.address,
                pair.token_b.address,
                10 ** pair.token_a.decimals,
            ),
            timeout=self._quote_timeout,
        )

    async def _scan_pair(self, network: str, pair: TokenPairConfig) -> Optional[ArbitrageOpportunity]:
        quote_a, quote_b = await asyncio.gather(
            self._quote(self._source_a, network, pair),
            self._quote(self._source_b, network, pair),
            return_exceptions=True,
        )
        for source, quote in ((self._source_a, quote_a), (self._source_b, quote_b)):
            if isinstance(quote, BaseException):
                if isinstance(quote, asyncio.CancelledError):
                    raise quote
                if isinstance(quote, asyncio.TimeoutError):
                    reason = "timeout"
                elif isinstance(quote, QuoteUnavailableError):
                    reason = str(quote)
                else:
                    reason = f"{type(quote).__name__}: {quote}"
                logger.warning(
                    "Quote unavailable",
                    error_code="quote_unavailable",
                    network=network,
                    pair=pair.label,
                    source=source.name,
                    reason=reason,
                )
                return None

        scale = 10 ** pair.token_b.decimals
        price_a = quote_a.output_amount / scale
        price_b = quote_b.output_amount / scale
        data = self.evaluate_spread(
            network, pair, price_a, price_b, quote_a.gas_estimate
        )
        if data is None:
            return None

        opportunity = self._store.create(data)
        logger.info(
            "Opportunity found",
            opportunity_id=opportunity.id,
            network=network,
            pair=pair.label,
            buy_dex=opportunity.dex_a,
            sell_dex=opportunity.dex_b,
            profit_percent=round(opportunity.profit_percent, 4),
            profit_amount=opportunity.profit_amount,
        )
        return opportunity

    def evaluate_spread(
        self,
        network: str,
        pair: TokenPairConfig,
        price_a: float,
        price_b: float,
        gas_estimate: int,
        now: Optional[datetime] = None,
    ) -> Optional[OpportunityCreate]:
        """Turn two quoted prices into an opportunity, or None below threshold.

        ``price_a`` comes from source A and ``price_b`` from source B. The
        cheaper source becomes the buy side; an exact tie buys on source A.
        """
        if price_a <= 0 or price_b <= 0:
            return None

        price_diff = abs(price_a - price_b)
        avg_price = (price_a + price_b) / 2
        profit_percent = price_diff / avg_price * 100
        if profit_percent < self._min_profit_percent:
            return None

        buy_on_a = price_a <= price_b
        now = now or utcnow()
        return OpportunityCreate(
            network=network,
            token_a=pair.token_a.address,
            token_b=pair.token_b.address,
            symbol_a=pair.token_a.symbol,
            symbol_b=pair.token_b.symbol,
            dex_a=self._source_a.name if buy_on_a else self._source_b.name,
            dex_b=self._source_b.name if buy_on_a else self._source_a.name,
            price_a=price_a if buy_on_a else price_b,
            price_b=price_b if buy_on_a else price_a,
            profit_amount=price_diff * settings.NOTIONAL_UNITS,
            profit_percent=profit_percent,
            min_capital=max(settings.FLOOR_CAPITAL, price_diff * settings.CAPITAL_SCALE),
            gas_estimate=gas_estimate,
            expires_at=now + self._ttl,
        )
