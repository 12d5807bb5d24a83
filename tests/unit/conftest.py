"""
Unit test fixtures. No HTTP layer; services run against the in-memory DB from the root conftest.
"""
import pytest


@pytest.fixture
def bus():
    from api.services.invalidation import InvalidationBus
    return InvalidationBus()


@pytest.fixture
def published(bus):
    """Records every key published on `bus`, in order."""
    keys = []
    bus.subscribe(keys.append)
    return keys


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
