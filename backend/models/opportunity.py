from datetime import datetime
from typing import Optional

from pydantic import Field

from models.types import WireModel
from utils.utcnow import utcnow


class OpportunityCreate(WireModel):
    """Fields the detector supplies when persisting a new opportunity"""

    network: str
    token_a: str
    token_b: str
    symbol_a: str = ""
    symbol_b: str = ""
    dex_a: str  # Buy side (cheaper quote)
    dex_b: str  # Sell side
    price_a: float
    price_b: float
    profit_amount: float
    profit_percent: float
    min_capital: float
    gas_estimate: float
    expires_at: datetime


class ArbitrageOpportunity(OpportunityCreate):
    """A detected, time-bounded price discrepancy between two quote sources"""

    id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    # Set while an execution attempt holds the opportunity; never serialized.
    claimed: bool = Field(default=False, exclude=True)

    @property
    def token_pair(self) -> str:
        return f"{self.token_a}/{self.token_b}"

    @property
    def pair_label(self) -> str:
        if self.symbol_a and self.symbol_b:
            return f"{self.symbol_a}/{self.symbol_b}"
        return self.token_pair

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """Currently active: not flipped inactive and not past expiry."""
        return self.is_active and (now or utcnow()) < self.expires_at
