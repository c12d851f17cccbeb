# swingsim/metrics.py
from typing import Iterable

from .models import Metrics, Trade, TradeAction


class MetricsAccumulator:
    """
    Derives performance statistics from the ledger contents.

    Profit is an approximation, not real P&L: every sell is credited with
    total * rate_percentage / 100 and adds rate_percentage to the ROI, and
    buys contribute nothing. Every recorded trade counts as successful.
    With no trades the win rate is reported as 0.
    """
    def __init__(self):
        self._current = Metrics()

    @property
    def current(self) -> Metrics:
        return self._current

    def recompute(self, trades: Iterable[Trade]) -> Metrics:
        total_trades = 0
        total_profit = 0.0
        roi = 0.0

        for trade in trades:
            total_trades += 1
            if trade.action is TradeAction.SELL:
                total_profit += trade.total * trade.rate_percentage / 100
                roi += trade.rate_percentage

        successful_trades = total_trades
        win_rate = (successful_trades / total_trades) * 100 if total_trades else 0.0

        self._current = Metrics(
            total_trades=total_trades,
            successful_trades=successful_trades,
            total_profit=total_profit,
            roi=roi,
            win_rate=win_rate,
        )
        return self._current
