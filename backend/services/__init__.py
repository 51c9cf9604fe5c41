from importlib import import_module

__all__ = [
    "ServiceContainer",
    "OpportunityDetector",
    "OpportunityStore",
    "ExecutionService",
    "TradeLedger",
    "Broadcaster",
    "NetworkMonitor",
    "TradingSettingsStore",
    "FeedClient",
]

_LAZY_EXPORTS = {
    "ServiceContainer": ("services.container", "ServiceContainer"),
    "OpportunityDetector": ("services.opportunity_detector", "OpportunityDetector"),
    "OpportunityStore": ("services.opportunity_store", "OpportunityStore"),
    "ExecutionService": ("services.execution", "ExecutionService"),
    "TradeLedger": ("services.trade_ledger", "TradeLedger"),
    "Broadcaster": ("services.broadcaster", "Broadcaster"),
    "NetworkMonitor": ("services.network_monitor", "NetworkMonitor"),
    "TradingSettingsStore": ("services.settings_store", "TradingSettingsStore"),
    "FeedClient": ("services.feed_client", "FeedClient"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module 'services' has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
