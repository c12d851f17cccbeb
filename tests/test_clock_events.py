"""
Tests for swingsim/clock.py and swingsim/events.py
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from swingsim.clock import SimulationClock
from swingsim.events import EngineEvent, EventBus, EventKind, Level


def _fast_clock(price=0.01, check=0.02):
    config = {'timers': {
        'price_interval_seconds': price,
        'order_check_interval_seconds': check,
        'cooldown_seconds': 0.01,
    }}
    return SimulationClock(config, logging.getLogger("test"))


class TestSimulationClock:

    @pytest.mark.asyncio
    async def test_both_loops_fire_until_stopped(self):
        clock = _fast_clock()
        on_price, on_check = AsyncMock(), AsyncMock()
        clock.start(on_price, on_check)
        await asyncio.sleep(0.1)
        await clock.stop()

        assert on_price.await_count >= 2
        assert on_check.await_count >= 1
        calls = on_price.await_count
        await asyncio.sleep(0.05)
        assert on_price.await_count == calls

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_kill_loop(self):
        clock = _fast_clock()
        on_price = AsyncMock(side_effect=RuntimeError("boom"))
        clock.start(on_price, AsyncMock())
        await asyncio.sleep(0.08)
        await clock.stop()
        assert on_price.await_count >= 2

    @pytest.mark.asyncio
    async def test_call_later_passes_args(self):
        clock = _fast_clock()
        callback = AsyncMock()
        clock.call_later(0.01, callback, 3, 19700.0)
        assert clock.pending_timers == 1
        await asyncio.sleep(0.05)

        callback.assert_awaited_once_with(3, 19700.0)
        assert clock.pending_timers == 0

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_timers(self):
        clock = _fast_clock()
        callback = AsyncMock()
        clock.call_later(0.5, callback)
        await clock.stop()
        await asyncio.sleep(0.01)
        callback.assert_not_awaited()
        assert clock.pending_timers == 0


class TestEventBus:

    @pytest.mark.asyncio
    async def test_kind_filtered_and_wildcard_subscribers(self):
        bus = EventBus(logging.getLogger("test"))
        placed, everything = AsyncMock(), AsyncMock()
        bus.subscribe(placed, EventKind.ORDER_PLACED)
        bus.subscribe(everything)

        await bus.emit(EventKind.ORDER_PLACED, "placed", Level.SUCCESS, order="o-1")
        await bus.emit(EventKind.TRADING_STOPPED, "stopped")

        assert placed.await_count == 1
        assert everything.await_count == 2
        event = placed.await_args.args[0]
        assert isinstance(event, EngineEvent)
        assert event.payload == {"order": "o-1"}
        assert event.kind.value == "order-placed"

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self):
        bus = EventBus(logging.getLogger("test"))
        broken = AsyncMock(side_effect=ValueError("render failed"))
        healthy = AsyncMock()
        bus.subscribe(broken)
        bus.subscribe(healthy)

        await bus.emit(EventKind.ORDER_EXECUTED, "done")
        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus(logging.getLogger("test"))
        handler = AsyncMock()
        bus.subscribe(handler, EventKind.ORDER_PLACED, EventKind.ORDER_EXECUTED)
        assert bus.subscriber_count == 2
        bus.unsubscribe(handler)
        await bus.emit(EventKind.ORDER_PLACED, "placed")
        handler.assert_not_awaited()
