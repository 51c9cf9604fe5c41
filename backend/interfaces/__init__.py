from .collaborators import (
    ChainExecutionError,
    ChainExecutionService,
    PriceQuoteProvider,
    Quote,
    QuoteUnavailableError,
)

__all__ = [
    "ChainExecutionError",
    "ChainExecutionService",
    "PriceQuoteProvider",
    "Quote",
    "QuoteUnavailableError",
]
