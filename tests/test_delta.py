"""Tests for Delta (normalized trend scores)."""

from datetime import timedelta
from pathlib import Path

import pytest

from forgetsy.delta import Delta, baseline_name
from forgetsy.exceptions import InvalidArgument, NotFound, StoreUnavailable
from forgetsy.storage.sqlite_backend import SQLiteStore

NAME = "foobar"
BIN = "foo_bin"
LIFETIME = timedelta(days=7)


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteStore:
    return SQLiteStore(tmp_path / "delta_test.db")


@pytest.fixture()
def delta(store: SQLiteStore, clock) -> Delta:
    d = Delta.create(store, NAME, LIFETIME, clock=clock)
    clock.advance(seconds=1)
    return d


class TestCreate:
    def test_creates_both_sets(self, delta: Delta, store: SQLiteStore):
        assert store.get(f"{NAME}:_t") == "604800"
        assert store.get(f"{NAME}_2t:_t") == "1209600"
        assert delta.baseline.name == baseline_name(NAME) == "foobar_2t"

    def test_baseline_lives_twice_as_long(self, delta: Delta):
        assert delta.baseline.lifetime == 2 * delta.primary.lifetime

    def test_default_start_is_one_lifetime_ago(self, store: SQLiteStore, clock):
        d = Delta.create(store, NAME, LIFETIME, clock=clock)
        assert d.primary.last_decayed == clock.now - LIFETIME
        assert d.baseline.last_decayed == clock.now - 2 * LIFETIME

    def test_baseline_spans_twice_the_age(self, store: SQLiteStore, clock):
        start = clock.now - timedelta(days=3)
        d = Delta.create(store, NAME, LIFETIME, start, clock=clock)
        assert d.primary.last_decayed == start
        assert d.baseline.last_decayed == clock.now - timedelta(days=6)

    def test_invalid_lifetime_writes_nothing(self, store: SQLiteStore, clock):
        with pytest.raises(InvalidArgument):
            Delta.create(store, NAME, timedelta(0), clock=clock)
        assert store.get(f"{NAME}:_t") is None
        assert store.get(f"{NAME}_2t:_t") is None


class TestReify:
    def test_reifies_existing(self, delta: Delta, store: SQLiteStore, clock):
        same = Delta.reify(store, NAME, clock=clock)
        assert same.primary.lifetime == LIFETIME
        assert same.baseline.lifetime == 2 * LIFETIME
        assert same.primary.last_decayed == delta.primary.last_decayed

    def test_fails_for_nonexistent(self, store: SQLiteStore):
        with pytest.raises(NotFound, match="Delta 'does-not-exist' doesn't exist"):
            Delta.reify(store, "does-not-exist")

    def test_fails_when_baseline_missing(self, delta: Delta, store: SQLiteStore):
        store.delete(f"{NAME}_2t:_t")
        with pytest.raises(NotFound):
            Delta.reify(store, NAME)

    def test_open_start_without_lifetime(self, store: SQLiteStore, clock):
        with pytest.raises(InvalidArgument):
            Delta.open(store, NAME, start=clock.now)

    def test_open_reifies(self, delta: Delta, store: SQLiteStore, clock):
        assert Delta.open(store, NAME, clock=clock).primary.lifetime == LIFETIME


class TestIncrement:
    def test_forwards_to_both_sets(self, delta: Delta):
        delta.increment(BIN, 3.0)
        assert delta.primary.fetch_bin(BIN, decay=False) == 3.0
        assert delta.baseline.fetch_bin(BIN, decay=False) == 3.0

    def test_each_set_drops_stale_independently(self, delta: Delta, clock):
        delta.increment(BIN, at=clock.now - timedelta(days=10))
        assert delta.primary.fetch_bin(BIN, decay=False) is None
        assert delta.baseline.fetch_bin(BIN, decay=False) == 1.0


class TestFetch:
    def test_normalized_counts_for_all_scores(self, delta: Delta):
        delta.increment(BIN)
        delta.increment(BIN)
        delta.increment("bar_bin")

        scores = delta.fetch()
        assert scores == {BIN: pytest.approx(1.0, abs=0.01), "bar_bin": pytest.approx(1.0, abs=0.01)}

    def test_limits_results(self, delta: Delta):
        delta.increment(BIN)
        delta.increment("bar_bin")
        delta.increment("baz_bin")

        assert len(delta.fetch(2)) == 2
        assert len(delta.fetch(3)) == 3
        assert len(delta.fetch(4)) == 3

    def test_normalized_values(self, delta: Delta, clock):
        now = clock.now
        delta.increment("UserFoo", at=now - timedelta(days=14))
        delta.increment("UserBar", at=now - timedelta(days=10))
        delta.increment("UserBar", at=now - timedelta(days=7))
        delta.increment("UserFoo", at=now - timedelta(days=1))
        delta.increment("UserFoo")

        scores = delta.fetch()
        assert scores["UserFoo"] == pytest.approx(0.667, abs=0.01)
        assert scores["UserBar"] == pytest.approx(0.5, abs=0.01)

    def test_keeps_primary_order(self, delta: Delta, clock):
        for _ in range(4):
            delta.increment("a", at=clock.now - timedelta(days=10))
        delta.increment("a", 2.0)
        delta.increment("b")

        scores = delta.fetch()
        assert list(scores) == ["a", "b"]
        assert scores["a"] == pytest.approx(1 / 3, abs=0.01)
        assert scores["b"] == pytest.approx(1.0, abs=0.01)
        assert delta.fetch(1) == {"a": pytest.approx(1 / 3, abs=0.01)}

    def test_missing_baseline_is_zero(self, delta: Delta):
        delta.primary.increment("solo")
        assert delta.fetch() == {"solo": 0.0}

    def test_only_in_baseline_is_left_out(self, delta: Delta, clock):
        delta.increment("old", at=clock.now - timedelta(days=10))
        assert "old" not in delta.fetch()


class TestFetchBin:
    def test_normalized_counts_for_single_bin(self, delta: Delta):
        delta.increment(BIN)
        delta.increment(BIN)
        delta.increment("bar_bin")

        assert delta.fetch_bin(BIN) == pytest.approx(1.0, abs=0.01)
        assert delta.fetch_bin("bar_bin") == pytest.approx(1.0, abs=0.01)

    def test_none_for_nonexistent_bin(self, delta: Delta):
        assert delta.fetch_bin("does-not-exist") is None

    def test_missing_baseline_is_none(self, delta: Delta):
        delta.primary.increment("solo")
        assert delta.fetch_bin("solo") is None

    def test_only_in_baseline_is_zero(self, delta: Delta, clock):
        delta.increment("old", at=clock.now - timedelta(days=10))
        assert delta.fetch_bin("old") == 0.0


class TestDecayScrub:
    def test_decay_both_sets(self, delta: Delta, clock):
        clock.advance(hours=1)
        delta.decay()
        assert delta.primary.last_decayed == clock.now
        assert delta.baseline.last_decayed == clock.now

    def test_scrub_both_sets(self, delta: Delta):
        delta.increment("tiny", 0.00001)
        assert delta.scrub() == 2
        assert delta.fetch(decay=False) == {}


class TestNaiveDatetimes:
    def test_naive_start(self, store: SQLiteStore, clock):
        start = clock.now.replace(tzinfo=None) - timedelta(days=3)
        d = Delta.create(store, NAME, LIFETIME, start, clock=clock)
        assert d.primary.last_decayed == clock.now - timedelta(days=3)
        assert d.baseline.last_decayed == clock.now - timedelta(days=6)

    def test_naive_clock(self, store: SQLiteStore, naive_clock):
        d = Delta.create(store, NAME, LIFETIME, clock=naive_clock)
        naive_clock.advance(seconds=1)
        d.increment(BIN)
        assert d.fetch() == {BIN: pytest.approx(1.0, abs=0.01)}
        assert d.fetch_bin(BIN) == pytest.approx(1.0, abs=0.01)


class TestStoreErrors:
    def test_fetch_error_propagates(self, flaky_store, clock):
        d = Delta.create(flaky_store, NAME, LIFETIME, clock=clock)
        clock.advance(seconds=1)
        d.increment(BIN)
        before = d.primary.last_decayed

        flaky_store.failing.add("batch")
        with pytest.raises(StoreUnavailable):
            d.fetch()
        with pytest.raises(StoreUnavailable):
            d.fetch_bin(BIN)
        assert d.primary.last_decayed == before

    def test_increment_error_propagates(self, flaky_store, clock):
        d = Delta.create(flaky_store, NAME, LIFETIME, clock=clock)
        clock.advance(seconds=1)
        flaky_store.failing.add("increment")
        with pytest.raises(StoreUnavailable):
            d.increment(BIN)

    def test_failed_create_leaves_nothing(self, flaky_store, clock):
        flaky_store.failing.add("batch")
        with pytest.raises(StoreUnavailable):
            Delta.create(flaky_store, NAME, LIFETIME, clock=clock)
        flaky_store.failing.clear()
        with pytest.raises(NotFound):
            Delta.reify(flaky_store, NAME)
