from .logger import (
    setup_logging,
    get_logger,
    scanner_logger,
    api_logger,
    execution_logger,
    chain_logger,
)
from .rate_limiter import RateLimiter, rate_limiter, endpoint_for_url
from .validation import (
    validate_eth_address,
    validate_limit,
    validate_request,
)

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "scanner_logger",
    "api_logger",
    "execution_logger",
    "chain_logger",

    # Rate Limiter
    "RateLimiter",
    "rate_limiter",
    "endpoint_for_url",

    # Validation
    "validate_eth_address",
    "validate_limit",
    "validate_request",
]
