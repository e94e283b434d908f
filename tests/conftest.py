from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import pytest

from presence_core.clock import FixedClock
from presence_core.store import RecordStore


@dataclass
class FakeNetworkInfo:
    name: str = "workstation"
    resolved: list = field(default_factory=list)
    nics: list = field(default_factory=list)
    interface_calls: int = 0

    def host_name(self) -> str:
        return self.name

    def host_addresses(self, host_name):
        return list(self.resolved)

    def interfaces(self):
        self.interface_calls += 1
        return list(self.nics)


@pytest.fixture
def clock():
    # Wednesday; January 2025 has 23 business days, 11 of them up to the 15th
    return FixedClock(date(2025, 1, 15))


@pytest.fixture
def fake_network():
    return FakeNetworkInfo()


@pytest.fixture
def make_store(tmp_path, clock):
    """Factory for initialized stores without the autosave thread."""
    stores = []

    def _make(name="attendance.csv", **kwargs):
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("autosave_interval", 0)
        store = RecordStore(tmp_path / name, **kwargs)
        store.initialize()
        stores.append(store)
        return store

    yield _make

    for store in stores:
        store.close()
