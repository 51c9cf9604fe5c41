"""Shared fixtures for the spread arbitrage tests."""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import asyncio
from datetime import timedelta
from typing import Optional

import pytest

from interfaces import Quote
from models.network import NetworkConfig, NetworkHealth, TokenConfig, TokenPairConfig
from models.opportunity import OpportunityCreate
from services.network_monitor import NetworkStatusStore
from services.opportunity_store import OpportunityStore
from services.trade_ledger import TradeLedger
from utils.utcnow import utcnow

WETH = TokenConfig(symbol="WETH", address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", decimals=18)
USDC = TokenConfig(symbol="USDC", address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", decimals=6)
BASE_WETH = TokenConfig(symbol="WETH", address="0x4200000000000000000000000000000000000006", decimals=18)
BASE_USDC = TokenConfig(symbol="USDC", address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", decimals=6)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeQuoteProvider:
    """Returns a fixed price (in token_b units) for every pair.

    ``prices`` maps network name -> price; ``errors`` maps network name ->
    exception to raise instead.
    """

    def __init__(self, name: str, price: float = 100.0, gas_estimate: int = 150_000):
        self.name = name
        self.price = price
        self.gas_estimate = gas_estimate
        self.prices: dict[str, float] = {}
        self.errors: dict[str, Exception] = {}
        self.delay = 0.0
        self.calls: list[tuple] = []

    async def quote(self, network, token_in, token_out, amount):
        self.calls.append((network, token_in, token_out, amount))
        if self.delay:
            await asyncio.sleep(self.delay)
        if network in self.errors:
            raise self.errors[network]
        price = self.prices.get(network, self.price)
        # Quotes are for one unit of token_in, paid out in 6-decimal USDC.
        return Quote(output_amount=int(round(price * 10**6)), gas_estimate=self.gas_estimate)


class FakeChainService:
    def __init__(
        self,
        deployed: tuple = ("ethereum", "base"),
        estimated_profit: float = 1000.0,
        tx_hash: str = "0xabc123",
    ):
        self.deployed = set(deployed)
        self.estimated_profit = estimated_profit
        self.estimate_error: Optional[Exception] = None
        self.tx_hash = tx_hash
        self.commit_error: Optional[Exception] = None
        self.commit_delay = 0.0
        self.estimate_calls: list[tuple] = []
        self.commit_calls: list[dict] = []
        self.health: dict[str, NetworkHealth] = {}
        self.health_error: Optional[Exception] = None
        self.balances: dict[str, str] = {}
        self.wallet = "0x1111111111111111111111111111111111111111"

    def is_deployed(self, network):
        return network in self.deployed

    def contract_address(self, network):
        if network not in self.deployed:
            return None
        return "0x2222222222222222222222222222222222222222"

    def wallet_address(self):
        return self.wallet

    async def estimate_profit(self, network, token_a, token_b, amount, buy_source, sell_source):
        self.estimate_calls.append((network, token_a, token_b, amount, buy_source, sell_source))
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.estimated_profit

    async def commit(self, network, token_a, token_b, amount, buy_source, sell_source, min_profit):
        self.commit_calls.append(
            {
                "network": network,
                "token_a": token_a,
                "token_b": token_b,
                "amount": amount,
                "buy_source": buy_source,
                "sell_source": sell_source,
                "min_profit": min_profit,
            }
        )
        if self.commit_delay:
            await asyncio.sleep(self.commit_delay)
        if self.commit_error is not None:
            raise self.commit_error
        return self.tx_hash

    async def network_health(self, network):
        if self.health_error is not None:
            raise self.health_error
        return self.health.get(
            network,
            NetworkHealth(is_active=True, block_number=19_000_000, gas_price=25_000_000_000),
        )

    async def wallet_balance(self, network):
        return self.balances.get(network, "0")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def networks():
    return [
        NetworkConfig(
            name="ethereum",
            chain_id=1,
            rpc_url="http://localhost:8545",
            native_currency="ETH",
            token_pairs=[TokenPairConfig(token_a=WETH, token_b=USDC)],
        ),
        NetworkConfig(
            name="base",
            chain_id=8453,
            rpc_url="http://localhost:8546",
            native_currency="ETH",
            token_pairs=[TokenPairConfig(token_a=BASE_WETH, token_b=BASE_USDC)],
        ),
    ]


@pytest.fixture
def store():
    return OpportunityStore()


@pytest.fixture
def ledger():
    return TradeLedger()


@pytest.fixture
def statuses(networks):
    return NetworkStatusStore(networks)


@pytest.fixture
def chain():
    return FakeChainService()


@pytest.fixture
def source_a():
    return FakeQuoteProvider("1inch", price=100.0)


@pytest.fixture
def source_b():
    return FakeQuoteProvider("0x Protocol", price=102.0)


@pytest.fixture
def make_opportunity_data():
    """Factory for OpportunityCreate payloads with sensible defaults."""

    def _make(**overrides) -> OpportunityCreate:
        now = utcnow()
        data = {
            "network": "ethereum",
            "token_a": WETH.address,
            "token_b": USDC.address,
            "symbol_a": "WETH",
            "symbol_b": "USDC",
            "dex_a": "1inch",
            "dex_b": "0x Protocol",
            "price_a": 100.0,
            "price_b": 102.0,
            "profit_amount": 200.0,
            "profit_percent": 1.98,
            "min_capital": 10000.0,
            "gas_estimate": 150000,
            "expires_at": now + timedelta(seconds=30),
        }
        data.update(overrides)
        return OpportunityCreate(**data)

    return _make

