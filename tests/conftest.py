"""
Shared fixtures: a SQLite-backed event store per test and a controllable clock.
"""

import pytest

from ward_capacity.capacity import MINUTE_MS, CapacityEngine
from ward_capacity.config import CapacitySettings
from ward_capacity.schemas import CapacityKey
from ward_capacity.store import SqlEventStore

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float = 0, ms: int = 0):
        self.now += int(minutes * MINUTE_MS) + ms


@pytest.fixture
def store(tmp_path):
    return SqlEventStore(f"sqlite:///{tmp_path / 'capacity.sqlite'}").init_schema()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(store, clock):
    def _make(**overrides):
        return CapacityEngine(store, CapacitySettings(**overrides), clock=clock)
    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


def seed_history(store, facility_id, ward_id, values, start=T0):
    key = CapacityKey(facility_id, ward_id)
    for i, v in enumerate(values):
        store.append_history_sample(key, start - (i + 1) * 1000, v)


def seed_events(store, facility_id, ward_id, n, at=T0):
    key = CapacityKey(facility_id, ward_id)
    for i in range(n):
        store.append(key, at, f"seed-{i}")
