"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from forgetsy.exceptions import StoreUnavailable
from forgetsy.storage.memory_backend import MemoryStore


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> datetime:
        self.now += timedelta(**kw)
        return self.now


class FlakyStore(MemoryStore):
    """Memory store whose named operations can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise StoreUnavailable(f"{op} failed: connection reset")

    def increment(self, key, member, amount):
        self._check("increment")
        return super().increment(key, member, amount)

    def remove_range_by_score(self, key, min_score, max_score):
        self._check("remove_range_by_score")
        return super().remove_range_by_score(key, min_score, max_score)

    def batch(self, ops):
        self._check("batch")
        super().batch(ops)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def naive_clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0))


@pytest.fixture()
def flaky_store() -> FlakyStore:
    return FlakyStore()
