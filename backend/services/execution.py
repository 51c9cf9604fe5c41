"""
Opportunity execution.

Turns a user request to execute an opportunity into at most one on-chain
commit:

    claim -> deployment check -> live profit estimate -> 80% threshold
          -> pending trade -> commit -> terminal trade -> opportunity inactive

The claim in the store is what keeps two concurrent requests for the same
id from both reaching commit. Anything that stops before the trade is
created releases the claim; once a trade exists it always ends terminal and
the opportunity is flipped inactive afterwards.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from config import settings
from interfaces import ChainExecutionService
from models.opportunity import ArbitrageOpportunity
from models.trade import Trade, TradeCreate, TradeStatus
from models.types import WireModel
from services.opportunity_store import OpportunityStore
from services.trade_ledger import TradeLedger
from utils.logger import execution_logger as logger

REJECTED_MESSAGE = "Transaction would fail - insufficient profit or liquidity"


class ExecutionErrorCode(str, Enum):
    QUOTE_UNAVAILABLE = "quote_unavailable"
    NOT_FOUND = "not_found"
    ALREADY_CLAIMED = "already_claimed"
    NETWORK_UNAVAILABLE = "network_unavailable"
    PROFIT_DECAYED = "profit_decayed"
    EXECUTION_REJECTED = "execution_rejected"
    EXECUTION_ERROR = "execution_error"
    INTERNAL_ERROR = "internal_error"


class ExecutionResult(WireModel):
    success: bool
    tx_hash: Optional[str] = None
    trade_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ExecutionErrorCode] = None

    @classmethod
    def failure(
        cls, code: ExecutionErrorCode, error: str, trade_id: Optional[str] = None
    ) -> "ExecutionResult":
        return cls(success=False, error=error, error_code=code, trade_id=trade_id)


def classify_commit_error(message: str) -> tuple[ExecutionErrorCode, str]:
    """Map a chain failure message onto a result code and user-facing text."""
    lowered = message.lower()
    if "revert" in lowered or "insufficient" in lowered:
        return ExecutionErrorCode.EXECUTION_REJECTED, REJECTED_MESSAGE
    return ExecutionErrorCode.EXECUTION_ERROR, message or "Execution failed"


TradeCallback = Callable[[Trade], Awaitable[None]]


class ExecutionService:
    def __init__(
        self,
        store: OpportunityStore,
        ledger: TradeLedger,
        chain: ChainExecutionService,
        on_trade_executed: Optional[TradeCallback] = None,
        profit_tolerance: Optional[float] = None,
        estimate_timeout_seconds: Optional[float] = None,
        commit_timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._ledger = ledger
        self._chain = chain
        self._on_trade_executed = on_trade_executed
        self._tolerance = (
            settings.PROFIT_DECAY_TOLERANCE if profit_tolerance is None else profit_tolerance
        )
        self._estimate_timeout = estimate_timeout_seconds or settings.EXECUTION_TIMEOUT_SECONDS
        self._commit_timeout = commit_timeout_seconds or settings.COMMIT_TIMEOUT_SECONDS

    def profit_threshold(self, opportunity: ArbitrageOpportunity) -> float:
        return opportunity.profit_amount * self._tolerance

    async def execute_opportunity(self, opportunity_id: str) -> ExecutionResult:
        opportunity = self._store.claim(opportunity_id)
        if opportunity is None:
            if self._store.is_claimed(opportunity_id):
                logger.info("Execution already in progress", opportunity_id=opportunity_id)
                return ExecutionResult.failure(
                    ExecutionErrorCode.ALREADY_CLAIMED, "Opportunity is already being executed"
                )
            return ExecutionResult.failure(
                ExecutionErrorCode.NOT_FOUND, "Opportunity not found or expired"
            )

        trade_started = False
        try:
            result = await self._validate(opportunity)
            if isinstance(result, ExecutionResult):
                return result
            estimated_profit = result
            trade = self._start_trade(opportunity, estimated_profit)
            trade_started = True
            return await self._commit(opportunity, trade, estimated_profit)
        finally:
            if not trade_started:
                self._store.release(opportunity_id)

    async def _validate(self, opportunity: ArbitrageOpportunity):
        """Pre-commit checks. Returns the live profit estimate or a failure result."""
        network = opportunity.network
        if not self._chain.is_deployed(network):
            return ExecutionResult.failure(
                ExecutionErrorCode.NETWORK_UNAVAILABLE,
                f"Smart contract not deployed on {network}",
            )

        try:
            estimated_profit = await asyncio.wait_for(
                self._chain.estimate_profit(
                    network,
                    opportunity.token_a,
                    opportunity.token_b,
                    opportunity.min_capital,
                    opportunity.dex_a,
                    opportunity.dex_b,
                ),
                timeout=self._estimate_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Profit estimation timed out", opportunity_id=opportunity.id)
            return ExecutionResult.failure(
                ExecutionErrorCode.EXECUTION_ERROR, "Profit estimation failed"
            )
        except Exception as e:
            logger.warning(
                "Profit estimation failed", opportunity_id=opportunity.id, error=str(e)
            )
            return ExecutionResult.failure(
                ExecutionErrorCode.EXECUTION_ERROR, "Profit estimation failed"
            )

        threshold = self.profit_threshold(opportunity)
        if estimated_profit < threshold:
            logger.info(
                "Profit dropped below threshold",
                opportunity_id=opportunity.id,
                estimated_profit=estimated_profit,
                threshold=threshold,
            )
            return ExecutionResult.failure(
                ExecutionErrorCode.PROFIT_DECAYED, "Profit dropped below threshold"
            )
        return estimated_profit

    def _start_trade(self, opportunity: ArbitrageOpportunity, estimated_profit: float) -> Trade:
        return self._ledger.append(
            TradeCreate(
                opportunity_id=opportunity.id,
                token_pair=opportunity.token_pair,
                profit_amount=opportunity.profit_amount,
                gas_used=opportunity.gas_estimate,
                gas_cost=0.0,
                network=opportunity.network,
                details={
                    "dex_a": opportunity.dex_a,
                    "dex_b": opportunity.dex_b,
                    "price_a": opportunity.price_a,
                    "price_b": opportunity.price_b,
                    "contract_address": self._chain.contract_address(opportunity.network),
                    "estimated_profit": estimated_profit,
                },
            )
        )

    async def _commit(
        self, opportunity: ArbitrageOpportunity, trade: Trade, estimated_profit: float
    ) -> ExecutionResult:
        threshold = self.profit_threshold(opportunity)

        tx_hash: Optional[str] = None
        error_message = "Execution interrupted"
        try:
            try:
                tx_hash = await asyncio.wait_for(
                    self._chain.commit(
                        opportunity.network,
                        opportunity.token_a,
                        opportunity.token_b,
                        opportunity.min_capital,
                        opportunity.dex_a,
                        opportunity.dex_b,
                        min_profit=threshold,
                    ),
                    timeout=self._commit_timeout,
                )
            except asyncio.TimeoutError:
                error_message = "Transaction confirmation timed out"
            except Exception as e:
                error_message = str(e) or type(e).__name__
        finally:
            if tx_hash:
                self._ledger.set_status(trade.id, TradeStatus.SUCCESS, tx_hash=tx_hash)
            else:
                self._ledger.set_status(
                    trade.id, TradeStatus.FAILED, details={"error": error_message}
                )
            self._store.set_active(opportunity.id, False)

        if not tx_hash:
            code, message = classify_commit_error(error_message)
            logger.error(
                "Arbitrage execution failed",
                opportunity_id=opportunity.id,
                trade_id=trade.id,
                error=error_message,
            )
            return ExecutionResult.failure(code, message, trade_id=trade.id)

        logger.info(
            "Arbitrage executed",
            opportunity_id=opportunity.id,
            trade_id=trade.id,
            tx_hash=tx_hash,
            estimated_profit=estimated_profit,
        )
        await self._notify(trade.id)
        return ExecutionResult(success=True, tx_hash=tx_hash, trade_id=trade.id)

    async def _notify(self, trade_id: str) -> None:
        if self._on_trade_executed is None:
            return
        trade = self._ledger.get(trade_id)
        if trade is None:
            return
        try:
            await self._on_trade_executed(trade)
        except Exception as e:
            logger.warning("Trade executed callback failed", trade_id=trade_id, error=str(e))
