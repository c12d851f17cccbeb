# swingsim/clock.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set

Callback = Callable[..., Awaitable[Any]]


class SimulationClock:
    """
    Owns every timer of the simulation: the price-tick loop, the
    order-check loop and one-shot delayed callbacks (order cooldowns).
    Runs for the lifetime of the engine, not of a trading session, so
    prices keep moving while trading is stopped.
    """
    def __init__(self, config: dict, logger: logging.Logger):
        self.cfg = config['timers']
        self.logger = logger
        self.running = False
        self._loops: List[asyncio.Task] = []
        self._timers: Set[asyncio.Task] = set()

    @property
    def price_interval(self) -> float:
        return self.cfg['price_interval_seconds']

    @property
    def check_interval(self) -> float:
        return self.cfg['order_check_interval_seconds']

    def start(self, on_price_tick: Callback, on_check_tick: Callback):
        if self.running:
            return
        self.running = True
        self._loops = [
            asyncio.create_task(self._run_every(self.price_interval, on_price_tick, "price")),
            asyncio.create_task(self._run_every(self.check_interval, on_check_tick, "order-check")),
        ]
        self.logger.info(
            f"⏱️ Clock started: price every {self.price_interval}s, order check every {self.check_interval}s"
        )

    async def _run_every(self, interval: float, callback: Callback, name: str):
        while self.running:
            await asyncio.sleep(interval)
            if not self.running:
                break
            try:
                await callback()
            except Exception:
                # One bad tick must not kill the loop
                self.logger.exception(f"{name} tick failed")

    def call_later(self, delay: float, callback: Callback, *args) -> Optional[asyncio.Task]:
        """
        Schedules a one-shot async callback. The callback is responsible for
        re-checking engine state when it fires.
        """
        task = asyncio.create_task(self._fire_later(delay, callback, args))
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)
        return task

    async def _fire_later(self, delay: float, callback: Callback, args: tuple):
        await asyncio.sleep(delay)
        try:
            await callback(*args)
        except Exception:
            self.logger.exception("Delayed callback failed")

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    async def stop(self):
        self.running = False
        tasks = self._loops + list(self._timers)
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loops = []
        self._timers.clear()
        self.logger.info("⏱️ Clock stopped")
