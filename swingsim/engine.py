# swingsim/engine.py
import logging
import random
from typing import Any, Optional, Tuple

from .clock import SimulationClock
from .errors import TradingError, ValidationError
from .events import EngineEvent, EventBus, EventKind, Level
from .ledger import Ledger
from .metrics import MetricsAccumulator
from .models import Balance, EngineState, Metrics, PendingOrder, PriceTick, Settings, Trade, TradingMode
from .order_engine import OrderEngine, Scheduler
from .price_feed import PriceFeed
from .settings_store import SettingsStore, validate_positive


class TradingEngine:
    """
    The single owner of all simulation state.

    Presentation code holds a reference to one TradingEngine, reads it through
    the get_* queries and changes it only through the async commands. Commands
    never raise engine errors: a rejected command leaves state untouched,
    publishes one `validation-failed` event and returns False / None.
    """
    def __init__(
        self,
        config: dict,
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("swingsim")

        self.events = EventBus(self.logger)
        self.clock = SimulationClock(config, self.logger)
        self.price_feed = PriceFeed(config, self.logger, rng=rng)
        self.settings = SettingsStore(config, self.price_feed, self.logger)
        self.ledger = Ledger(config, self.logger)
        self.metrics = MetricsAccumulator()
        self.orders = OrderEngine(
            config,
            self.settings,
            self.price_feed,
            self.ledger,
            self.metrics,
            self.events,
            scheduler or self.clock,
            self.logger,
        )

        self.price_feed.seed(self.settings.current.pair)

    # --- QUERIES ---

    def get_settings(self) -> Settings:
        return self.settings.snapshot()

    def get_current_price(self) -> Optional[float]:
        return self.price_feed.current_price

    def get_target_price(self) -> Optional[float]:
        order = self.orders.pending_order
        return order.target_price if order else None

    def get_price_history(self) -> Tuple[PriceTick, ...]:
        return self.price_feed.history()

    def get_pending_order(self) -> Optional[PendingOrder]:
        return self.orders.pending_order

    def get_trades(self) -> Tuple[Trade, ...]:
        return self.ledger.trades()

    def get_balance(self) -> Balance:
        return self.ledger.balance()

    def get_metrics(self) -> Metrics:
        return self.metrics.current

    def get_state(self) -> EngineState:
        return self.orders.state

    # --- COMMANDS ---

    async def update_settings(self, **fields: Any) -> bool:
        try:
            changes = self.settings.update(**fields)
        except TradingError as e:
            await self._reject(e)
            return False

        if 'pair' in changes:
            await self.events.emit(EventKind.PAIR_CHANGED, f"Trading pair set to {changes['pair'][1]}",
                                   Level.INFO, pair=changes['pair'][1])
        if 'mode' in changes:
            await self._announce_mode(changes['mode'][1])
        await self.events.emit(
            EventKind.SETTINGS_UPDATED,
            "Settings updated successfully",
            Level.SUCCESS,
            changes={name: new for name, (_, new) in changes.items()},
        )
        return True

    async def toggle_mode(self) -> bool:
        try:
            mode = self.settings.toggle_mode()
        except TradingError as e:
            await self._reject(e)
            return False
        await self._announce_mode(mode)
        return True

    async def start_trading(self) -> bool:
        try:
            await self.orders.start()
        except TradingError as e:
            await self._reject(e)
            return False
        return True

    async def stop_trading(self) -> bool:
        await self.orders.stop()
        return True

    async def simulate_target_reached(self, order_id: str) -> Optional[Trade]:
        try:
            return await self.orders.simulate_target_reached(order_id)
        except TradingError as e:
            await self._reject(e)
            return None

    async def push_price(self, price: float) -> Optional[Trade]:
        """Feeds a specific price, then runs the order check against it."""
        try:
            price = validate_positive("price", price)
        except ValidationError as e:
            await self._reject(e)
            return None
        tick = self.price_feed.record(price)
        return await self._after_price(tick)

    # --- CLOCK CALLBACKS ---

    async def on_price_tick(self) -> Optional[Trade]:
        tick = self.price_feed.tick()
        if tick is None:
            return None
        return await self._after_price(tick)

    async def on_check_tick(self) -> Optional[Trade]:
        if not self.settings.active:
            return None
        return await self.orders.check_pending_order()

    async def _after_price(self, tick: PriceTick) -> Optional[Trade]:
        await self.events.emit(EventKind.PRICE_UPDATED, f"Price {tick.price:,.4f}", Level.INFO, tick=tick)
        return await self.orders.check_pending_order()

    # --- LIFETIME ---

    async def start(self):
        self.clock.start(self.on_price_tick, self.on_check_tick)

    async def shutdown(self):
        await self.orders.stop()
        await self.clock.stop()

    # --- HELPERS ---

    async def _announce_mode(self, mode: TradingMode):
        await self.events.emit(EventKind.MODE_CHANGED, f"Switched to {mode.value} mode", Level.SUCCESS,
                               mode=mode.value)
        if mode is TradingMode.LIVE:
            await self.events.emit(EventKind.MODE_CHANGED, "Live mode is simulated for this demo", Level.INFO,
                                   mode=mode.value)

    async def _reject(self, error: TradingError):
        self.logger.warning(f"⛔ REJECTED: {error.message}")
        await self.events.publish(
            EngineEvent(EventKind.VALIDATION_FAILED, error.message, Level.ERROR, payload=error.to_dict())
        )
