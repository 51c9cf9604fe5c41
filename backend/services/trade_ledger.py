"""
Trade ledger.

Owns every Trade record. A trade starts ``pending`` and moves exactly once to
``success`` or ``failed``; later transition requests are ignored.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Optional

from models.trade import Trade, TradeCreate, TradeStats, TradeStatus
from utils.logger import get_logger
from utils.utcnow import local_midnight_utc, utcnow

logger = get_logger(__name__)

DEFAULT_TRADE_LIMIT = 50


class TradeLedger:
    def __init__(self):
        self._trades: dict[str, Trade] = {}
        self._lock = threading.Lock()

    def append(self, data: TradeCreate) -> Trade:
        trade = Trade(
            **data.model_dump(),
            id=str(uuid.uuid4()),
            status=TradeStatus.PENDING,
            executed_at=utcnow(),
        )
        with self._lock:
            self._trades[trade.id] = trade
            return trade.model_copy(deep=True)

    def get(self, trade_id: str) -> Optional[Trade]:
        with self._lock:
            trade = self._trades.get(trade_id)
            return trade.model_copy(deep=True) if trade else None

    def set_status(
        self,
        trade_id: str,
        status: TradeStatus,
        tx_hash: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Move a pending trade to a terminal status (no-op for unknown ids)."""
        status = TradeStatus(status)
        with self._lock:
            trade = self._trades.get(trade_id)
            if trade is None:
                return
            if trade.status.is_terminal or not status.is_terminal:
                logger.warning(
                    "Rejected trade status transition",
                    trade_id=trade_id,
                    current=trade.status.value,
                    requested=status.value,
                )
                return
            trade.status = status
            if tx_hash:
                trade.tx_hash = tx_hash
            if details:
                trade.details = {**trade.details, **details}

    def list(self, limit: int = DEFAULT_TRADE_LIMIT) -> list[Trade]:
        """Most recent trades first."""
        with self._lock:
            # Insertion order is execution order.
            newest = reversed(self._trades.values())
            return [t.model_copy(deep=True) for _, t in zip(range(max(0, limit)), newest)]

    def list_for_opportunity(self, opportunity_id: str) -> list[Trade]:
        with self._lock:
            return [
                t.model_copy(deep=True)
                for t in self._trades.values()
                if t.opportunity_id == opportunity_id
            ]

    def stats(self, now: Optional[datetime] = None) -> TradeStats:
        with self._lock:
            trades = list(self._trades.values())

        successful = [t for t in trades if t.status == TradeStatus.SUCCESS]
        midnight = local_midnight_utc(now)
        total_profit = sum(t.profit_amount for t in successful)
        daily_profit = sum(t.profit_amount for t in successful if t.executed_at >= midnight)
        success_rate = (len(successful) / len(trades) * 100) if trades else 0.0

        return TradeStats(
            total_profit=total_profit,
            total_trades=len(trades),
            success_rate=round(success_rate, 2),
            daily_profit=daily_profit,
        )
