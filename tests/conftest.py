from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from shiftclock.store import MemoryStore
from shiftclock.tracker import ShiftTracker


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def tracker(store, clock) -> ShiftTracker:
    return ShiftTracker(store=store, tz=ZoneInfo("UTC"), clock=clock)
