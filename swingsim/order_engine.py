# swingsim/order_engine.py
import logging
import time
import uuid
from collections import deque
from dataclasses import replace
from typing import Any, Deque, Optional, Protocol

from .errors import InvalidStateError
from .events import EventBus, EventKind, Level
from .ledger import Ledger
from .metrics import MetricsAccumulator
from .models import EngineState, OrderStatus, PendingOrder, Trade, TradeAction
from .price_feed import PriceFeed
from .settings_store import SettingsStore

# Executed order ids remembered for duplicate suppression
CONSUMED_ID_WINDOW = 32


class Scheduler(Protocol):
    def call_later(self, delay: float, callback, *args) -> Any: ...


class OrderEngine:
    """
    Buy-low / sell-high state machine.

    IDLE --start--> ORDER_PENDING --price crosses target--> COOLDOWN
         --cooldown elapses (still active)--> ORDER_PENDING ...
    stop() returns to IDLE from any state.

    At most one PendingOrder exists. The price-tick path and the periodic
    check both go through check_pending_order(); an order id is marked
    consumed as soon as its execution begins, so a second trigger for the
    same order is dropped. Cooldown callbacks carry the stop generation they
    were scheduled under and do nothing if trading was stopped in between.
    """
    def __init__(
        self,
        config: dict,
        settings: SettingsStore,
        price_feed: PriceFeed,
        ledger: Ledger,
        metrics: MetricsAccumulator,
        events: EventBus,
        scheduler: Scheduler,
        logger: logging.Logger,
    ):
        self.settings = settings
        self.price_feed = price_feed
        self.ledger = ledger
        self.metrics = metrics
        self.events = events
        self.scheduler = scheduler
        self.logger = logger
        self.cooldown_seconds: float = config['timers']['cooldown_seconds']

        self._pending: Optional[PendingOrder] = None
        self._consumed: Deque[str] = deque(maxlen=CONSUMED_ID_WINDOW)
        self._generation = 0
        self._starting = False
        self._cooling_down = False

    # --- QUERIES ---

    @property
    def pending_order(self) -> Optional[PendingOrder]:
        return self._pending

    @property
    def state(self) -> EngineState:
        if not self.settings.active:
            return EngineState.IDLE
        if self._starting:
            return EngineState.AWAITING_FIRST_ORDER
        if self._pending is not None:
            return EngineState.ORDER_PENDING
        if self._cooling_down:
            return EngineState.COOLDOWN
        return EngineState.AWAITING_FIRST_ORDER

    def target_price_for(self, reference_price: float) -> float:
        """
        After a buy the next target is above the reference (sell high),
        after a sell it is below (buy low).
        """
        s = self.settings.current
        if s.last_action is TradeAction.BUY:
            return reference_price * (1 + s.rate_percentage / 100)
        return reference_price * (1 - s.rate_percentage / 100)

    # --- LIFECYCLE ---

    async def start(self) -> PendingOrder:
        self.settings.start(self.price_feed.current_price)
        self._starting = True
        try:
            order = self._place_order(self.price_feed.current_price)
        finally:
            self._starting = False

        await self._announce_order(order)
        await self.events.emit(EventKind.TRADING_STARTED, "Trading started", Level.SUCCESS,
                               pair=order.pair, mode=self.settings.current.mode.value)
        return order

    async def stop(self) -> bool:
        if not self.settings.stop():
            self.logger.debug("Stop requested while inactive, nothing to do")
            return False

        # Void any cooldown timer already in flight
        self._generation += 1
        self._cooling_down = False
        cancelled, self._pending = self._pending, None

        if cancelled is not None:
            cancelled = replace(cancelled, status=OrderStatus.CANCELLED)
            self.logger.info(f"🛑 Cancelled pending {cancelled.action.value.upper()} {cancelled.id}")
            await self.events.emit(
                EventKind.ORDER_CANCELLED,
                f"Canceling pending {cancelled.action.value.upper()} order",
                Level.INFO,
                order=cancelled,
            )
        self.logger.info("⏹️ Trading stopped")
        await self.events.emit(EventKind.TRADING_STOPPED, "Trading stopped", Level.INFO)
        return True

    # --- MATCHING ---

    async def check_pending_order(self) -> Optional[Trade]:
        """Shared condition check for price ticks and the periodic check tick."""
        order = self._pending
        if order is None or not self.settings.active:
            return None
        price = self.price_feed.current_price
        if price is None or not order.is_satisfied_by(price):
            return None
        return await self._execute(order, price)

    async def simulate_target_reached(self, order_id: str) -> Optional[Trade]:
        """Manual override: executes the pending order as if its target was hit."""
        if order_id in self._consumed:
            self.logger.debug(f"Order {order_id} already executed, override ignored")
            return None
        order = self._pending
        if order is None or order.id != order_id:
            raise InvalidStateError(f"No pending order with id {order_id}", code="UNKNOWN_ORDER")
        return await self._execute(order, self.price_feed.current_price)

    async def _execute(self, order: PendingOrder, trigger_price: Optional[float]) -> Optional[Trade]:
        if order.id in self._consumed:
            self.logger.debug(f"Duplicate trigger for {order.id} dropped")
            return None
        self._consumed.append(order.id)

        if self._pending is not order:
            # Cancelled or replaced between trigger and execution
            return None

        s = self.settings.current
        trade = Trade(
            id=f"trade-{uuid.uuid4().hex[:12]}",
            timestamp=time.time(),
            pair=order.pair,
            action=order.action,
            price=order.target_price,
            amount=order.amount,
            total=order.target_price * order.amount,
            mode=s.mode,
            order_id=order.id,
            rate_percentage=order.rate_percentage,
        )

        # Ledger, metrics and alternation move together, before any await
        self.ledger.append(trade)
        self.metrics.recompute(self.ledger.trades())
        self.settings.record_action(trade.action)
        self._pending = None
        self._cooling_down = True
        self.scheduler.call_later(self.cooldown_seconds, self._on_cooldown_expired, self._generation, trade.price)

        market = f"${trigger_price:,.4f}" if trigger_price is not None else "n/a"
        self.logger.info(
            f"✅ {trade.action.value.upper()} {trade.amount} {trade.pair} @ ${trade.price:,.4f} "
            f"(market {market}) | Total: ${trade.total:,.4f}"
        )
        await self.events.emit(
            EventKind.ORDER_EXECUTED,
            f"{trade.action.value.upper()} order executed at ${trade.price:,.2f}",
            Level.SUCCESS,
            trade=trade,
            trigger_price=trigger_price,
        )
        return trade

    async def _on_cooldown_expired(self, generation: int, reference_price: float) -> Optional[PendingOrder]:
        if generation != self._generation or not self.settings.active or self._pending is not None:
            self.logger.debug(f"Stale cooldown (generation {generation}) ignored")
            return None
        self._cooling_down = False
        order = self._place_order(reference_price)
        await self._announce_order(order, "New ")
        return order

    # --- HELPERS ---

    def _place_order(self, reference_price: float) -> PendingOrder:
        s = self.settings.current
        order = PendingOrder(
            id=f"order-{uuid.uuid4().hex[:12]}",
            created_at=time.time(),
            pair=s.pair,
            action=s.next_action,
            target_price=self.target_price_for(reference_price),
            amount=s.amount,
            rate_percentage=s.rate_percentage,
        )
        self._pending = order
        self.logger.info(
            f"📝 {order.action.value.upper()} {order.amount} {order.pair} pending @ ${order.target_price:,.4f} "
            f"(ref ${reference_price:,.4f}, rate {order.rate_percentage}%)"
        )
        return order

    async def _announce_order(self, order: PendingOrder, prefix: str = ""):
        await self.events.emit(
            EventKind.ORDER_PLACED,
            f"{prefix}{order.action.value.upper()} order placed at target price: ${order.target_price:,.2f}",
            Level.SUCCESS,
            order=order,
        )
