# swingsim/events.py
"""
Engine event fan-out.

The engine publishes typed events; the dashboard's notification panel and the
audit logger subscribe. Subscribers run in registration order on the engine's
event loop. A failing subscriber is logged and skipped so that rendering or
disk problems never interrupt trading.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional


class EventKind(Enum):
    ORDER_PLACED = "order-placed"
    ORDER_EXECUTED = "order-executed"
    ORDER_CANCELLED = "order-cancelled"
    TRADING_STARTED = "trading-started"
    TRADING_STOPPED = "trading-stopped"
    MODE_CHANGED = "mode-changed"
    SETTINGS_UPDATED = "settings-updated"
    PAIR_CHANGED = "pair-changed"
    VALIDATION_FAILED = "validation-failed"
    PRICE_UPDATED = "price-updated"


class Level(Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class EngineEvent:
    kind: EventKind
    message: str
    level: Level = Level.INFO
    payload: dict = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[EngineEvent], Awaitable[None]]


class EventBus:
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        # None key = wildcard subscribers
        self._handlers: Dict[Optional[EventKind], List[Handler]] = {}

    def subscribe(self, handler: Handler, *kinds: EventKind):
        """Registers an async handler for the given kinds, or for every event if none given."""
        for kind in (kinds or (None,)):
            self._handlers.setdefault(kind, []).append(handler)

    def unsubscribe(self, handler: Handler):
        for handlers in self._handlers.values():
            if handler in handlers:
                handlers.remove(handler)

    async def publish(self, event: EngineEvent):
        handlers = self._handlers.get(event.kind, []) + self._handlers.get(None, [])
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                self.logger.exception(f"Event handler failed for {event.kind.value}")

    async def emit(self, kind: EventKind, message: str, level: Level = Level.INFO, **payload):
        await self.publish(EngineEvent(kind=kind, message=message, level=level, payload=payload))

    @property
    def subscriber_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())
