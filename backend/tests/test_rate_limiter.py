import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from utils.rate_limiter import RateLimitConfig, RateLimiter, endpoint_for_url


def test_endpoint_for_url():
    assert endpoint_for_url("https://api.1inch.io/v5.0/1/quote") == "oneinch_quote"
    assert endpoint_for_url("https://base.api.0x.org/swap/v1/quote") == "zerox_quote"
    assert endpoint_for_url("https://example.org") == "default"


@pytest.mark.asyncio
async def test_burst_is_immediate_then_waits():
    limiter = RateLimiter({"default": RateLimitConfig(requests_per_window=20, window_seconds=1.0, burst_limit=2)})

    assert await limiter.acquire("oneinch_quote") == 0.0
    assert await limiter.acquire("oneinch_quote") == 0.0
    assert await limiter.acquire("oneinch_quote") > 0.0


@pytest.mark.asyncio
async def test_status_reports_touched_endpoints():
    limiter = RateLimiter()

    await limiter.acquire("zerox_quote")
    status = limiter.get_status()

    assert set(status) == {"zerox_quote"}
    assert status["zerox_quote"]["limit"] == "10/1.0s"
    assert status["zerox_quote"]["capacity"] == 10
