"""
Tests for swingsim/ledger.py and swingsim/metrics.py
"""

import logging

import pytest

from swingsim.ledger import Ledger
from swingsim.metrics import MetricsAccumulator
from swingsim.models import Metrics, Trade, TradeAction, TradingMode


def _make_trade(**overrides):
    """Create a Trade with sensible defaults."""
    price = overrides.get("price", 19700.0)
    amount = overrides.get("amount", 0.01)
    return Trade(
        id=overrides.get("id", "trade-1"),
        timestamp=overrides.get("timestamp", 1_700_000_000.0),
        pair=overrides.get("pair", "BTCUSDT"),
        action=overrides.get("action", TradeAction.BUY),
        price=price,
        amount=amount,
        total=price * amount,
        mode=overrides.get("mode", TradingMode.SIMULATION),
        order_id=overrides.get("order_id", "order-1"),
        rate_percentage=overrides.get("rate_percentage", 1.5),
    )


class TestLedger:

    def test_initial_balance_from_config(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        balance = ledger.balance()
        assert balance.base == 1.0
        assert balance.quote == 20000.0
        assert ledger.trades() == ()

    def test_buy_moves_quote_into_base(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        ledger.append(_make_trade(action=TradeAction.BUY, price=19700, amount=0.01))
        balance = ledger.balance()
        assert balance.base == pytest.approx(1.01)
        assert balance.quote == pytest.approx(20000 - 197.0)

    def test_sell_moves_base_into_quote(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        ledger.append(_make_trade(action=TradeAction.SELL, price=20000, amount=0.5))
        balance = ledger.balance()
        assert balance.base == pytest.approx(0.5)
        assert balance.quote == pytest.approx(30000.0)

    def test_trades_are_newest_first(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        first = _make_trade(id="trade-a")
        second = _make_trade(id="trade-b", action=TradeAction.SELL)
        ledger.append(first)
        ledger.append(second)
        assert ledger.trades() == (second, first)
        assert len(ledger) == 2

    def test_balance_snapshot_is_a_copy(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        snapshot = ledger.balance()
        snapshot.base = 99
        assert ledger.balance().base == 1.0

    def test_negative_balance_is_logged_not_blocked(self, config, caplog):
        ledger = Ledger(config, logging.getLogger("test"))
        with caplog.at_level(logging.WARNING):
            ledger.append(_make_trade(action=TradeAction.SELL, amount=2.0))
        assert ledger.balance().base == pytest.approx(-1.0)
        assert "negative" in caplog.text

    def test_net_worth(self, config):
        ledger = Ledger(config, logging.getLogger("test"))
        assert ledger.net_worth(100.0) == pytest.approx(20100.0)


class TestMetricsAccumulator:

    def test_zero_trades_reports_zero(self):
        metrics = MetricsAccumulator().recompute([])
        assert metrics == Metrics()
        assert metrics.win_rate == 0
        assert metrics.total_profit == 0

    def test_initial_current_is_zeroed(self):
        assert MetricsAccumulator().current.win_rate == 0.0

    def test_only_sells_contribute_profit(self):
        trades = [
            _make_trade(action=TradeAction.SELL, price=20000, amount=0.01, rate_percentage=1.5),
            _make_trade(action=TradeAction.BUY, price=19700, amount=0.01, rate_percentage=1.5),
        ]
        metrics = MetricsAccumulator().recompute(trades)
        assert metrics.total_trades == 2
        assert metrics.successful_trades == 2
        assert metrics.win_rate == 100.0
        assert metrics.total_profit == pytest.approx(200.0 * 1.5 / 100)
        assert metrics.roi == pytest.approx(1.5)

    def test_profit_uses_rate_recorded_on_each_trade(self):
        trades = [
            _make_trade(action=TradeAction.SELL, price=100, amount=1, rate_percentage=2.0),
            _make_trade(action=TradeAction.SELL, price=100, amount=1, rate_percentage=1.0),
        ]
        acc = MetricsAccumulator()
        metrics = acc.recompute(trades)
        assert metrics.total_profit == pytest.approx(3.0)
        assert metrics.roi == pytest.approx(3.0)
        assert acc.current is metrics
