"""Per-user trading settings (lazy defaults, merge-on-write)."""

import threading
import uuid
from decimal import Decimal
from typing import Optional

from config import settings as app_settings
from models.trading_settings import TradingSettings, TradingSettingsUpdate
from utils.logger import get_logger
from utils.utcnow import utcnow

logger = get_logger(__name__)


class TradingSettingsStore:
    def __init__(
        self,
        default_min_profit_threshold: Optional[str] = None,
        default_max_gas_price: Optional[str] = None,
        default_max_trade_amount: Optional[str] = None,
        default_enabled_networks: Optional[list[str]] = None,
    ):
        self._defaults = {
            "min_profit_threshold": Decimal(
                default_min_profit_threshold or app_settings.DEFAULT_MIN_PROFIT_THRESHOLD
            ),
            "max_gas_price": Decimal(default_max_gas_price or app_settings.DEFAULT_MAX_GAS_PRICE),
            "auto_execute": False,
            "enabled_networks": list(
                default_enabled_networks or app_settings.DEFAULT_ENABLED_NETWORKS
            ),
            "max_trade_amount": Decimal(
                default_max_trade_amount or app_settings.DEFAULT_MAX_TRADE_AMOUNT
            ),
        }
        self._settings: dict[str, TradingSettings] = {}
        self._lock = threading.Lock()

    def _default_record(self, user_id: str) -> TradingSettings:
        return TradingSettings(
            id=str(uuid.uuid4()),
            user_id=user_id,
            **{k: (list(v) if isinstance(v, list) else v) for k, v in self._defaults.items()},
        )

    def get(self, user_id: str) -> TradingSettings:
        """Return the user's settings, creating the default record on first read."""
        with self._lock:
            record = self._settings.get(user_id)
            if record is None:
                record = self._default_record(user_id)
                self._settings[user_id] = record
                logger.info("Created default trading settings", user_id=user_id)
            return record.model_copy(deep=True)

    def update(self, user_id: str, update: TradingSettingsUpdate) -> TradingSettings:
        """Merge the set fields of ``update`` onto the stored or default record."""
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            existing = self._settings.get(user_id) or self._default_record(user_id)
            merged = existing.model_copy(update={**changes, "updated_at": utcnow()}, deep=True)
            # model_copy skips validation; rebuild so merged values are coerced
            merged = TradingSettings.model_validate(merged.model_dump())
            self._settings[user_id] = merged
            return merged.model_copy(deep=True)
