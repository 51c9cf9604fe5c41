from .network import (
    NetworkConfig,
    NetworkHealth,
    NetworkStatus,
    NetworkWalletInfo,
    TokenConfig,
    TokenPairConfig,
    WalletInfo,
)
from .opportunity import ArbitrageOpportunity, OpportunityCreate
from .trade import Trade, TradeCreate, TradeStats, TradeStatus
from .trading_settings import TradingSettings, TradingSettingsUpdate

__all__ = [
    "NetworkConfig",
    "NetworkHealth",
    "NetworkStatus",
    "NetworkWalletInfo",
    "TokenConfig",
    "TokenPairConfig",
    "WalletInfo",
    "ArbitrageOpportunity",
    "OpportunityCreate",
    "Trade",
    "TradeCreate",
    "TradeStats",
    "TradeStatus",
    "TradingSettings",
    "TradingSettingsUpdate",
]
