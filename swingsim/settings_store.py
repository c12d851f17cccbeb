# swingsim/settings_store.py
import logging
import math
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidStateError, NoPriceAvailableError, ValidationError
from .models import Settings, TradeAction, TradingMode
from .price_feed import PriceFeed

UPDATABLE_FIELDS = ('mode', 'pair', 'rate_percentage', 'amount', 'last_action')


def validate_positive(field: str, value: Any) -> float:
    """Coerces to float; rejects non-numbers, NaN, infinities and values <= 0."""
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a number", field=field, value=value) from e
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{field} must be a finite number greater than 0", field=field, value=value)
    return number


class SettingsStore:
    """
    Owns the strategy configuration and the trading-mode / activity flag.
    Every change is validated as a whole before anything is applied, so a
    rejected update never leaves a half-merged state behind.
    """
    def __init__(self, config: dict, price_feed: PriceFeed, logger: logging.Logger):
        defaults = config['strategy']
        self.price_feed = price_feed
        self.logger = logger
        self._settings = Settings(
            mode=TradingMode(defaults['mode']),
            pair=defaults['pair'],
            rate_percentage=float(defaults['rate_percentage']),
            amount=float(defaults['amount']),
            last_action=TradeAction(defaults['last_action']),
            active=False,
        )
        validate_positive('rate_percentage', self._settings.rate_percentage)
        validate_positive('amount', self._settings.amount)

    @property
    def active(self) -> bool:
        return self._settings.active

    @property
    def current(self) -> Settings:
        """Live settings object. Read-only by convention; use snapshot() outside the engine."""
        return self._settings

    def snapshot(self) -> Settings:
        return self._settings.copy()

    # --- VALIDATION ---

    @staticmethod
    def _parse_enum(enum_cls, field: str, value: Any):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).lower())
        except ValueError as e:
            allowed = ", ".join(m.value for m in enum_cls)
            raise ValidationError(f"{field} must be one of: {allowed}", field=field, value=value) from e

    def _coerce(self, field: str, value: Any) -> Any:
        if field == 'mode':
            return self._parse_enum(TradingMode, field, value)
        if field == 'last_action':
            return self._parse_enum(TradeAction, field, value)
        if field == 'pair':
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("pair must be a non-empty symbol", field=field, value=value)
            return value.strip().upper()
        return validate_positive(field, value)

    # --- COMMANDS ---

    def update(self, **fields: Any) -> Dict[str, Tuple[Any, Any]]:
        """
        Validates and merges a subset of settings.
        Returns {field: (old, new)} for the fields that actually changed.
        Changing the pair reseeds the price feed.
        """
        unknown = [name for name in fields if name not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}", field=unknown[0])

        coerced = {name: self._coerce(name, value) for name, value in fields.items()}
        changes = {
            name: (getattr(self._settings, name), value)
            for name, value in coerced.items()
            if getattr(self._settings, name) != value
        }

        if changes and self._settings.active:
            raise InvalidStateError(
                f"Stop trading before changing {', '.join(changes)}", code="ACTIVE_TRADING"
            )

        for name, (_, new) in changes.items():
            setattr(self._settings, name, new)

        if 'pair' in changes:
            self.price_feed.seed(self._settings.pair)

        if changes:
            self.logger.info(f"⚙️ Settings updated: {', '.join(f'{k}={v[1]}' for k, v in changes.items())}")
        return changes

    def toggle_mode(self) -> TradingMode:
        if self._settings.active:
            raise InvalidStateError("Stop trading before switching modes", code="ACTIVE_TRADING")
        self._settings.mode = self._settings.mode.toggled()
        self.price_feed.clear_history()
        self.logger.info(f"🔁 Mode switched to {self._settings.mode.value}")
        return self._settings.mode

    def start(self, current_price: Optional[float]):
        if self._settings.active:
            raise InvalidStateError("Trading is already active", code="ALREADY_ACTIVE")
        if current_price is None:
            raise NoPriceAvailableError("Cannot start trading before a price is available")
        self._settings.active = True

    def stop(self) -> bool:
        """Returns False when trading was not active (no-op)."""
        if not self._settings.active:
            return False
        self._settings.active = False
        return True

    def record_action(self, action: TradeAction):
        """Execution path only: advances the alternation after a fill."""
        self._settings.last_action = action
