# swingsim/price_feed.py
import logging
import random
import time
from collections import deque
from typing import Deque, List, Optional, Tuple

from .models import PriceTick


class PriceFeed:
    """
    Synthetic market data source.
    Produces a random-walk price series and keeps a bounded history window
    (deque with maxlen, oldest ticks drop off first).
    """
    def __init__(self, config: dict, logger: logging.Logger, rng: Optional[random.Random] = None):
        self.cfg = config['market']
        self.logger = logger
        self.rng = rng or random.Random(config['system'].get('random_seed'))

        self.volatility: float = self.cfg['volatility']
        self.capacity: int = self.cfg['history_capacity']
        self._history: Deque[PriceTick] = deque(maxlen=self.capacity)
        self._current: Optional[PriceTick] = None
        self.pair: Optional[str] = None

    # --- QUERIES ---

    @property
    def current_price(self) -> Optional[float]:
        return self._current.price if self._current else None

    def history(self) -> Tuple[PriceTick, ...]:
        return tuple(self._history)

    def base_price(self, pair: str) -> float:
        return float(self.cfg['base_prices'].get(pair, self.cfg['default_base_price']))

    # --- GENERATION ---

    def seed(self, pair: str) -> List[PriceTick]:
        """
        Replaces the history with `seed_points` prices scattered around the
        pair's base price, one spacing apart and ending now.
        """
        base = self.base_price(pair)
        jitter = self.cfg['seed_jitter']
        points = self.cfg['seed_points']
        spacing = self.cfg['seed_spacing_seconds']
        now = time.time()

        seeded = [
            PriceTick(
                timestamp=now - (points - 1 - i) * spacing,
                price=base * (1 + self.rng.uniform(-jitter, jitter)),
            )
            for i in range(points)
        ]

        self.pair = pair
        self._history.clear()
        self._history.extend(seeded)
        self._current = seeded[-1] if seeded else None
        self.logger.info(f"🌱 Seeded {len(seeded)} prices for {pair} around ${base:,.4f}")
        return seeded

    def tick(self, previous_price: Optional[float] = None) -> Optional[PriceTick]:
        """
        Random-walk step: previous * (1 + U(-v, v)).
        Without any previous price there is nothing to walk from, so this is a no-op.
        """
        if previous_price is None:
            previous_price = self.current_price
        if previous_price is None:
            return None

        change = self.rng.uniform(-self.volatility, self.volatility)
        return self.record(previous_price * (1 + change))

    def record(self, price: float) -> PriceTick:
        """Appends an externally supplied price and makes it current."""
        tick = PriceTick(timestamp=time.time(), price=float(price))
        self._history.append(tick)
        self._current = tick
        return tick

    def clear_history(self):
        """Drops the chart window but keeps the current price."""
        self._history.clear()
