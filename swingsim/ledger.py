# swingsim/ledger.py
import logging
from collections import deque
from typing import Deque, Tuple

from .models import Balance, Trade, TradeAction


class Ledger:
    """
    Append-only trade book plus the wallet it moves.
    A fill and its balance delta are applied together in append(); nothing
    else writes to the balance.
    """
    def __init__(self, config: dict, logger: logging.Logger):
        wallet = config['wallet']
        self.logger = logger
        self._balance = Balance(base=float(wallet['base']), quote=float(wallet['quote']))
        # newest first
        self._trades: Deque[Trade] = deque()

    def append(self, trade: Trade):
        if trade.action is TradeAction.BUY:
            self._balance.base += trade.amount
            self._balance.quote -= trade.total
        else:
            self._balance.base -= trade.amount
            self._balance.quote += trade.total
        self._trades.appendleft(trade)

        if self._balance.base < 0 or self._balance.quote < 0:
            # Not enforced: the simulator keeps trading on a negative wallet.
            self.logger.warning(
                f"⚠️ Wallet went negative after {trade.id}: base={self._balance.base:.8f} quote={self._balance.quote:.2f}"
            )

    def trades(self) -> Tuple[Trade, ...]:
        return tuple(self._trades)

    def balance(self) -> Balance:
        return self._balance.copy()

    def net_worth(self, price: float) -> float:
        """Wallet value in quote currency at the given price."""
        return self._balance.quote + self._balance.base * price

    def __len__(self) -> int:
        return len(self._trades)
