from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from models.types import WireModel
from utils.utcnow import utcnow


class TradingSettings(WireModel):
    """Per-user trading preferences (stored and served, not enforced)"""

    id: str
    user_id: str
    min_profit_threshold: Decimal = Decimal("1.5")
    max_gas_price: Decimal = Decimal("50")
    auto_execute: bool = False
    enabled_networks: list[str] = ["ethereum", "base"]
    max_trade_amount: Decimal = Decimal("10000")
    updated_at: datetime = Field(default_factory=utcnow)


class TradingSettingsUpdate(WireModel):
    """Partial update; unset fields keep their stored or default values"""

    min_profit_threshold: Optional[Decimal] = Field(default=None, ge=0)
    max_gas_price: Optional[Decimal] = Field(default=None, ge=0)
    auto_execute: Optional[bool] = None
    enabled_networks: Optional[list[str]] = None
    max_trade_amount: Optional[Decimal] = Field(default=None, ge=0)
