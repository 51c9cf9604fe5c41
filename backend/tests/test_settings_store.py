import sys
from pathlib import Path
from decimal import Decimal

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.trading_settings import TradingSettingsUpdate
from services.settings_store import TradingSettingsStore


def test_first_read_creates_defaults():
    store = TradingSettingsStore()

    record = store.get("user-1")

    assert record.user_id == "user-1"
    assert record.min_profit_threshold == Decimal("1.5")
    assert record.max_gas_price == Decimal("50")
    assert record.auto_execute is False
    assert record.enabled_networks == ["ethereum", "base"]
    assert record.max_trade_amount == Decimal("10000")
    assert store.get("user-1").id == record.id


def test_update_merges_onto_defaults_and_round_trips():
    store = TradingSettingsStore()

    store.update("user-1", TradingSettingsUpdate(min_profit_threshold=Decimal("2.0")))
    record = store.get("user-1")

    assert record.min_profit_threshold == Decimal("2.0")
    assert record.max_gas_price == Decimal("50")
    assert record.enabled_networks == ["ethereum", "base"]


def test_update_accepts_camel_case_payload():
    store = TradingSettingsStore()
    update = TradingSettingsUpdate.model_validate(
        {"autoExecute": True, "enabledNetworks": ["polygon"], "maxTradeAmount": "2500"}
    )

    record = store.update("user-2", update)

    assert record.auto_execute is True
    assert record.enabled_networks == ["polygon"]
    assert record.max_trade_amount == Decimal("2500")
    assert record.min_profit_threshold == Decimal("1.5")


def test_update_keeps_previous_writes():
    store = TradingSettingsStore()
    store.update("user-1", TradingSettingsUpdate(max_gas_price=Decimal("80")))

    store.update("user-1", TradingSettingsUpdate(auto_execute=True))
    record = store.get("user-1")

    assert record.max_gas_price == Decimal("80")
    assert record.auto_execute is True


def test_users_are_isolated_and_reads_are_copies():
    store = TradingSettingsStore()
    first = store.get("a")
    first.enabled_networks.append("polygon")

    assert store.get("a").enabled_networks == ["ethereum", "base"]
    assert store.get("b").enabled_networks == ["ethereum", "base"]


def test_wire_format_uses_string_decimals():
    wire = TradingSettingsStore().get("user-1").to_wire()

    assert wire["userId"] == "user-1"
    assert wire["minProfitThreshold"] == "1.5"
    assert wire["autoExecute"] is False
    assert "updatedAt" in wire
