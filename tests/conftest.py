"""
Shared test fixtures for the swingsim engine tests.

Provides:
- A deterministic config (seeded RNG, defaults otherwise)
- A manual scheduler standing in for the clock's one-shot timers
- A TradingEngine wired to both, plus an event recorder
"""

import logging
import random

import pytest

from swingsim.config import load_config
from swingsim.engine import TradingEngine
from swingsim.events import EngineEvent, EventKind


class ManualScheduler:
    """Records call_later requests; tests fire them explicitly."""

    def __init__(self):
        self.calls = []

    def call_later(self, delay, callback, *args):
        self.calls.append((delay, callback, args))

    async def fire_all(self):
        calls, self.calls = self.calls, []
        results = []
        for _, callback, args in calls:
            results.append(await callback(*args))
        return results


class EventRecorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event: EngineEvent):
        self.events.append(event)

    def of_kind(self, kind: EventKind):
        return [e for e in self.events if e.kind is kind]


@pytest.fixture
def config():
    return load_config(path=None, overrides={'system': {'random_seed': 7}})


@pytest.fixture
def logger():
    return logging.getLogger("swingsim.tests")


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def engine(config, logger, scheduler):
    return TradingEngine(config, logger, rng=random.Random(7), scheduler=scheduler)


@pytest.fixture
def recorder(engine):
    rec = EventRecorder()
    engine.events.subscribe(rec)
    return rec
