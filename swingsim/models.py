# swingsim/models.py
from dataclasses import dataclass, replace
from enum import Enum
import time


class TradingMode(Enum):
    SIMULATION = "simulation"
    LIVE = "live"

    def toggled(self) -> "TradingMode":
        return TradingMode.LIVE if self is TradingMode.SIMULATION else TradingMode.SIMULATION


class TradeAction(Enum):
    BUY = "buy"
    SELL = "sell"

    def opposite(self) -> "TradeAction":
        return TradeAction.SELL if self is TradeAction.BUY else TradeAction.BUY


class OrderStatus(Enum):
    """
    Enum representing the lifecycle states of an order or trade.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EngineState(Enum):
    IDLE = "idle"
    AWAITING_FIRST_ORDER = "awaiting_first_order"
    ORDER_PENDING = "order_pending"
    COOLDOWN = "cooldown"


@dataclass(frozen=True, slots=True)
class PriceTick:
    """
    Immutable price point produced by the PriceFeed.
    """
    timestamp: float
    price: float


@dataclass(slots=True)
class Settings:
    mode: TradingMode
    pair: str
    rate_percentage: float
    amount: float
    last_action: TradeAction
    active: bool = False

    def copy(self) -> "Settings":
        return replace(self)

    @property
    def next_action(self) -> TradeAction:
        return self.last_action.opposite()


@dataclass(frozen=True, slots=True)
class PendingOrder:
    """
    The single outstanding order of the strategy.
    Executes at target_price once the feed crosses it.
    """
    id: str
    created_at: float
    pair: str
    action: TradeAction
    target_price: float
    amount: float
    rate_percentage: float
    status: OrderStatus = OrderStatus.PENDING

    def is_satisfied_by(self, price: float) -> bool:
        if self.action is TradeAction.BUY:
            return price <= self.target_price
        return price >= self.target_price


@dataclass(frozen=True, slots=True)
class Trade:
    """
    An executed fill. Appended once to the Ledger, never mutated.
    """
    id: str
    timestamp: float
    pair: str
    action: TradeAction
    price: float
    amount: float
    total: float
    mode: TradingMode
    order_id: str
    rate_percentage: float
    status: OrderStatus = OrderStatus.COMPLETED

    def to_row(self) -> list:
        """Flat representation used by the CSV audit trail."""
        return [
            time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(self.timestamp)),
            self.id,
            self.order_id,
            self.pair,
            self.action.value,
            f"{self.price:.8f}",
            f"{self.amount:.8f}",
            f"{self.total:.8f}",
            self.mode.value,
            self.status.value,
        ]


@dataclass(slots=True)
class Balance:
    base: float
    quote: float

    def copy(self) -> "Balance":
        return Balance(self.base, self.quote)


@dataclass(frozen=True, slots=True)
class Metrics:
    total_trades: int = 0
    successful_trades: int = 0
    total_profit: float = 0.0
    roi: float = 0.0
    win_rate: float = 0.0
