import sys
from pathlib import Path

import httpx
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from interfaces import QuoteUnavailableError
from services.quote_providers import (
    DEFAULT_GAS_ESTIMATE,
    OneInchQuoteProvider,
    ZeroXQuoteProvider,
)
from utils.rate_limiter import RateLimitConfig, RateLimiter

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _limiter():
    return RateLimiter({"default": RateLimitConfig(requests_per_window=1000)})


@pytest.mark.asyncio
async def test_oneinch_quote_parses_amount_and_gas(networks):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"toTokenAmount": "3012450000", "estimatedGas": "180000"})

    provider = OneInchQuoteProvider(networks, api_key="", client=_client(handler), limiter=_limiter())

    quote = await provider.quote("ethereum", WETH, USDC, 10**18)

    assert quote.output_amount == 3012450000
    assert quote.gas_estimate == 180000
    assert "/1/quote" in seen["url"]
    assert seen["params"] == {
        "fromTokenAddress": WETH,
        "toTokenAddress": USDC,
        "amount": str(10**18),
    }
    await provider.close()


@pytest.mark.asyncio
async def test_zerox_quote_uses_chain_host_and_api_key(networks):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["host"] = request.url.host
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("0x-api-key")
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"buyAmount": "3020000000"})

    provider = ZeroXQuoteProvider(networks, api_key="k-123", client=_client(handler), limiter=_limiter())

    quote = await provider.quote("base", WETH, USDC, 10**18)

    assert quote.output_amount == 3020000000
    assert quote.gas_estimate == DEFAULT_GAS_ESTIMATE
    assert seen["host"] == "base.api.0x.org"
    assert seen["path"] == "/swap/v1/quote"
    assert seen["key"] == "k-123"
    assert seen["params"]["sellAmount"] == str(10**18)


@pytest.mark.asyncio
async def test_http_error_raises_quote_unavailable(networks):
    provider = OneInchQuoteProvider(
        networks,
        api_key="",
        client=_client(lambda request: httpx.Response(429, json={"error": "rate limited"})),
        limiter=_limiter(),
    )

    with pytest.raises(QuoteUnavailableError):
        await provider.quote("ethereum", WETH, USDC, 10**18)


@pytest.mark.asyncio
async def test_transport_error_raises_quote_unavailable(networks):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = ZeroXQuoteProvider(networks, api_key="", client=_client(handler), limiter=_limiter())

    with pytest.raises(QuoteUnavailableError):
        await provider.quote("ethereum", WETH, USDC, 10**18)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"toTokenAmount": "not-a-number"}, {"toTokenAmount": "0"}, ["unexpected"]],
)
async def test_unusable_payload_raises_quote_unavailable(networks, payload):
    provider = OneInchQuoteProvider(
        networks,
        api_key="",
        client=_client(lambda request: httpx.Response(200, json=payload)),
        limiter=_limiter(),
    )

    with pytest.raises(QuoteUnavailableError):
        await provider.quote("ethereum", WETH, USDC, 10**18)


@pytest.mark.asyncio
async def test_unknown_network_raises_quote_unavailable(networks):
    provider = OneInchQuoteProvider(
        networks,
        api_key="",
        client=_client(lambda request: httpx.Response(200, json={"toTokenAmount": "1"})),
        limiter=_limiter(),
    )

    with pytest.raises(QuoteUnavailableError):
        await provider.quote("solana", WETH, USDC, 10**18)


def test_provider_names_match_dex_labels(networks):
    assert OneInchQuoteProvider(networks).name == "1inch"
    assert ZeroXQuoteProvider(networks).name == "0x Protocol"
