"""Collaborator interface contracts.

These protocols define the minimum async API the detector and execution
service need from the outside world, decoupling them from the concrete
aggregator HTTP clients and the web3 adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from models.network import NetworkHealth


class QuoteUnavailableError(Exception):
    """A quote source failed, timed out, or returned an unusable payload."""


class ChainExecutionError(Exception):
    """The execution contract call failed or was rejected."""


@dataclass(frozen=True)
class Quote:
    """Output of swapping ``amount`` base units of token_in for token_out."""

    output_amount: int  # base units of token_out
    gas_estimate: int


class PriceQuoteProvider(Protocol):
    """One independent liquidity source (DEX aggregator)."""

    name: str

    async def quote(self, network: str, token_in: str, token_out: str, amount: int) -> Quote:
        """Quote a swap; raises QuoteUnavailableError on failure."""


class ChainExecutionService(Protocol):
    """Execution contract access on every configured network."""

    def is_deployed(self, network: str) -> bool:
        """True when an execution contract is reachable on ``network``."""

    def contract_address(self, network: str) -> Optional[str]:
        """Address of the deployed execution contract, if any."""

    def wallet_address(self) -> Optional[str]:
        """Signing wallet address, or None in read-only mode."""

    async def estimate_profit(
        self,
        network: str,
        token_a: str,
        token_b: str,
        amount: float,
        buy_source: str,
        sell_source: str,
    ) -> float:
        """Live profit estimate for the round trip, in token units."""

    async def commit(
        self,
        network: str,
        token_a: str,
        token_b: str,
        amount: float,
        buy_source: str,
        sell_source: str,
        min_profit: float,
    ) -> str:
        """Submit the trade and wait for confirmation; returns the tx hash."""

    async def network_health(self, network: str) -> NetworkHealth:
        """Current block height and gas price for ``network``."""

    async def wallet_balance(self, network: str) -> str:
        """Native balance of the signing wallet, formatted in ether units."""
