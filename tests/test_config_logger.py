"""
Tests for swingsim/config.py and swingsim/logger.py
"""

import asyncio
import csv
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from swingsim.config import ConfigError, DEFAULT_CONFIG, load_config
from swingsim.events import EventBus, EventKind
from swingsim.logger import AsyncAuditLogger, TRADE_LOG_HEADER, setup_console_logger
from swingsim.models import Trade, TradeAction, TradingMode


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"))
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_yaml_is_merged_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timers:\n  cooldown_seconds: 2\nmarket:\n  base_prices:\n    SOLUSDT: 25\n")
        config = load_config(str(path))

        assert config['timers']['cooldown_seconds'] == 2
        assert config['timers']['price_interval_seconds'] == 3
        assert config['market']['base_prices']['SOLUSDT'] == 25
        assert config['market']['base_prices']['BTCUSDT'] == 20000.0

    def test_overrides_win(self, tmp_path):
        config = load_config(None, overrides={'strategy': {'amount': 1}})
        assert config['strategy']['amount'] == 1
        assert DEFAULT_CONFIG['strategy']['amount'] == 0.01

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_shipped_config_loads(self):
        config = load_config(str(Path(__file__).resolve().parent.parent / "config.yaml"))
        assert config['strategy']['pair'] == "BTCUSDT"


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_executed_trades_are_written(self, tmp_path, logger):
        path = tmp_path / "audit" / "trades.csv"
        audit = AsyncAuditLogger(str(path))
        bus = EventBus(logger)
        audit.attach(bus)
        await audit.start()

        trade = Trade(
            id="trade-1", timestamp=1_700_000_000.0, pair="BTCUSDT", action=TradeAction.BUY,
            price=19700.0, amount=0.01, total=197.0, mode=TradingMode.SIMULATION,
            order_id="order-1", rate_percentage=1.5,
        )
        await bus.emit(EventKind.ORDER_EXECUTED, "executed", trade=trade)
        await bus.emit(EventKind.ORDER_PLACED, "ignored")
        await audit.stop()

        with open(path, newline='') as f:
            rows = list(csv.reader(f))
        assert rows[0] == TRADE_LOG_HEADER
        assert len(rows) == 2
        assert rows[1][1:5] == ["trade-1", "order-1", "BTCUSDT", "buy"]
        assert float(rows[1][7]) == pytest.approx(197.0)

    @pytest.mark.asyncio
    async def test_header_written_once(self, tmp_path):
        path = tmp_path / "trades.csv"
        for _ in range(2):
            audit = AsyncAuditLogger(str(path))
            await audit.start()
            await audit.stop()
        with open(path, newline='') as f:
            assert len(list(csv.reader(f))) == 1

    @pytest.mark.asyncio
    async def test_worker_survives_unexpected_write_errors(self, tmp_path, capsys):
        audit = AsyncAuditLogger(str(tmp_path / "trades.csv"))
        await audit.start()

        with patch("swingsim.logger.AsyncWriter") as writer_cls:
            writer_cls.return_value.writerow = AsyncMock(side_effect=[RuntimeError("boom"), None])
            await audit.log_trade(["first"])
            await audit.log_trade(["second"])
            await asyncio.wait_for(audit.stop(), timeout=2)

        assert writer_cls.return_value.writerow.await_count == 2
        assert "LOGGING FAILURE: boom" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_stop_without_start_is_safe(self, tmp_path):
        await AsyncAuditLogger(str(tmp_path / "x.csv")).stop()


def test_console_logger_is_configured_once():
    first = setup_console_logger("swingsim.test.console", "DEBUG")
    second = setup_console_logger("swingsim.test.console", "DEBUG")
    assert first is second
    assert len(second.handlers) == 1
