from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.types import WireModel
from utils.utcnow import utcnow


class TokenConfig(BaseModel):
    """An ERC-20 token on one network"""

    symbol: str
    address: str
    decimals: int = 18


class TokenPairConfig(BaseModel):
    """Ordered pair scanned by the detector (token_a is sold, token_b bought)"""

    token_a: TokenConfig
    token_b: TokenConfig

    @property
    def label(self) -> str:
        return f"{self.token_a.symbol}/{self.token_b.symbol}"


class NetworkConfig(BaseModel):
    """Static description of a scanned network"""

    name: str
    chain_id: int
    rpc_url: str
    native_currency: str
    token_pairs: list[TokenPairConfig] = []


class NetworkHealth(BaseModel):
    """Live reading returned by the chain collaborator"""

    is_active: bool
    block_number: int = 0
    gas_price: int = 0  # wei
    contract_deployed: bool = False


class NetworkStatus(WireModel):
    """Last observed health of a network, upserted by the network monitor"""

    network: str
    is_active: bool = True
    block_number: str = "0"
    gas_price: str = "0"
    last_update: datetime = Field(default_factory=utcnow)


class NetworkWalletInfo(WireModel):
    network: str
    chain_id: int
    native_currency: str
    balance: str = "0"
    contract_address: Optional[str] = None
    is_deployed: bool = False


class WalletInfo(WireModel):
    wallet_address: Optional[str] = None
    networks: list[NetworkWalletInfo] = []
