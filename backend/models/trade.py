from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.types import WireModel
from utils.utcnow import utcnow


class TradeStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TradeStatus.PENDING


class TradeCreate(WireModel):
    opportunity_id: Optional[str] = None
    token_pair: str
    profit_amount: float
    gas_used: float = 0.0
    gas_cost: float = 0.0
    network: str
    details: dict[str, Any] = {}


class Trade(TradeCreate):
    """One execution attempt against an opportunity"""

    id: str
    tx_hash: Optional[str] = None
    status: TradeStatus = TradeStatus.PENDING
    executed_at: datetime = Field(default_factory=utcnow)


class TradeStats(WireModel):
    total_profit: float = 0.0
    total_trades: int = 0
    success_rate: float = 0.0
    daily_profit: float = 0.0
