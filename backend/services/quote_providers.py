"""
DEX aggregator quote clients.

Two independent liquidity sources are compared by the detector: 1inch and
0x. Both answer "how much token_out do I get for ``amount`` base units of
token_in", which is all the detector needs.
"""

from __future__ import annotations

from typing import Optional, Sequence

import httpx

from config import settings, zerox_base_url
from interfaces import Quote, QuoteUnavailableError
from models.network import NetworkConfig
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter, endpoint_for_url, rate_limiter

logger = get_logger(__name__)

DEFAULT_GAS_ESTIMATE = 200_000


class AggregatorClient:
    """Shared plumbing: lazy httpx client, chain-id lookup, rate limiting."""

    name = "aggregator"

    def __init__(
        self,
        networks: Sequence[NetworkConfig],
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[RateLimiter] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._chain_ids = {n.name: n.chain_id for n in networks}
        self._client = client
        self._limiter = limiter or rate_limiter
        self._timeout = timeout_seconds or settings.QUOTE_TIMEOUT_SECONDS

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _chain_id(self, network: str) -> int:
        try:
            return self._chain_ids[network]
        except KeyError:
            raise QuoteUnavailableError(f"{self.name}: unknown network {network}")

    async def _get_json(self, url: str, params: dict, headers: dict) -> dict:
        await self._limiter.acquire(endpoint_for_url(url))
        client = await self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise QuoteUnavailableError(f"{self.name} API error: {e}") from e
        if not isinstance(data, dict):
            raise QuoteUnavailableError(f"{self.name}: unexpected response payload")
        return data

    def _parse_quote(self, data: dict, amount_field: str) -> Quote:
        try:
            output_amount = int(data[amount_field])
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteUnavailableError(f"{self.name}: missing {amount_field}") from e
        if output_amount <= 0:
            raise QuoteUnavailableError(f"{self.name}: empty quote")
        try:
            gas_estimate = int(data.get("estimatedGas") or DEFAULT_GAS_ESTIMATE)
        except (TypeError, ValueError):
            gas_estimate = DEFAULT_GAS_ESTIMATE
        return Quote(output_amount=output_amount, gas_estimate=gas_estimate)


class OneInchQuoteProvider(AggregatorClient):
    name = "1inch"

    def __init__(self, networks: Sequence[NetworkConfig], api_key: Optional[str] = None, **kwargs):
        super().__init__(networks, **kwargs)
        self._api_key = api_key if api_key is not None else settings.ONEINCH_API_KEY
        self._base_url = settings.ONEINCH_API_URL

    async def quote(self, network: str, token_in: str, token_out: str, amount: int) -> Quote:
        chain_id = self._chain_id(network)
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        data = await self._get_json(
            f"{self._base_url}/{chain_id}/quote",
            params={
                "fromTokenAddress": token_in,
                "toTokenAddress": token_out,
                "amount": str(amount),
            },
            headers=headers,
        )
        return self._parse_quote(data, "toTokenAmount")


class ZeroXQuoteProvider(AggregatorClient):
    name = "0x Protocol"

    def __init__(self, networks: Sequence[NetworkConfig], api_key: Optional[str] = None, **kwargs):
        super().__init__(networks, **kwargs)
        self._api_key = api_key if api_key is not None else settings.ZEROX_API_KEY

    async def quote(self, network: str, token_in: str, token_out: str, amount: int) -> Quote:
        chain_id = self._chain_id(network)
        headers = {"0x-api-key": self._api_key} if self._api_key else {}
        data = await self._get_json(
            f"{zerox_base_url(chain_id)}/swap/v1/quote",
            params={
                "sellToken": token_in,
                "buyToken": token_out,
                "sellAmount": str(amount),
            },
            headers=headers,
        )
        return self._parse_quote(data, "buyAmount")
