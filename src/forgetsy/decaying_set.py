"""A set of counters whose scores decay exponentially with time.

Only two scalars are kept besides the scores themselves: the mean
lifetime of an observation and the moment decay was last applied. Scores
are stored as of that moment and brought current lazily, by decaying the
whole set at once before a read.

Decay is a read-modify-write spanning several store calls with no lock
around it. Two concurrent ``decay()`` calls on the same set can both read
the pre-decay scores and apply overlapping factors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from forgetsy.core.decay import (
    HI_PASS_FILTER,
    as_utc,
    decay_factor,
    from_timestamp,
    lifetime_seconds,
    to_timestamp,
    utcnow,
)
from forgetsy.exceptions import InvalidArgument, NotFound
from forgetsy.storage.base import BatchOp, Delete, SetScore, SetValue, SortedSetStore

log = logging.getLogger(__name__)

LIFETIME_KEY = "_t"
LAST_DECAYED_KEY = "_last_decay"

Clock = Callable[[], datetime]


class DecayingSet:
    """Named bins with exponentially decaying scores.

    Build one with :meth:`create` or :meth:`reify` (or :meth:`open`, which
    picks between them). The constructor itself only binds to a store and
    touches nothing.

    A set created with a seven day lifetime and incremented once for
    ``"home"`` fetches as ``{"home": 0.99...}``, the fraction below one
    being the decay over the time since creation.
    """

    def __init__(
        self,
        store: SortedSetStore,
        name: str,
        lifetime: timedelta,
        *,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.name = name
        self._lifetime = lifetime
        self._clock = clock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        store: SortedSetStore,
        name: str,
        lifetime: timedelta,
        start: datetime | None = None,
        *,
        clock: Clock = utcnow,
    ) -> DecayingSet:
        """Create a fresh set, replacing any set already stored as *name*."""
        _check_lifetime(lifetime)
        start = as_utc(start or clock())

        if store.get(_lifetime_key(name)) is not None:
            log.warning("Overwriting existing set %s", name)

        log.info("Creating set %s with lifetime %s and start time %s", name, lifetime, start)
        # Old bins and metadata go in the same batch as the new metadata
        store.batch(
            [
                Delete(name),
                Delete(_lifetime_key(name)),
                Delete(_last_decayed_key(name)),
                SetValue(_lifetime_key(name), str(lifetime_seconds(lifetime))),
                SetValue(_last_decayed_key(name), repr(to_timestamp(start))),
            ]
        )
        return cls(store, name, timedelta(seconds=lifetime_seconds(lifetime)), clock=clock)

    @classmethod
    def reify(cls, store: SortedSetStore, name: str, *, clock: Clock = utcnow) -> DecayingSet:
        """Load the set stored as *name*. Raises :class:`NotFound` if missing."""
        raw_lifetime = store.get(_lifetime_key(name))
        if raw_lifetime is None or store.get(_last_decayed_key(name)) is None:
            raise NotFound(name)

        log.info("Reifying set %s", name)
        return cls(store, name, timedelta(seconds=int(float(raw_lifetime))), clock=clock)

    @classmethod
    def open(
        cls,
        store: SortedSetStore,
        name: str,
        lifetime: timedelta | None = None,
        start: datetime | None = None,
        *,
        clock: Clock = utcnow,
    ) -> DecayingSet:
        """Create when *lifetime* is given, otherwise reify."""
        if lifetime is not None:
            return cls.create(store, name, lifetime, start, clock=clock)
        if start is not None:
            raise InvalidArgument("Must provide lifetime for new set")
        return cls.reify(store, name, clock=clock)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    @property
    def last_decayed(self) -> datetime:
        """When decay was last applied, read fresh from the store."""
        raw = self.store.get(_last_decayed_key(self.name))
        if raw is None:
            raise NotFound(self.name)
        return from_timestamp(float(raw))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def increment(self, bin: str, amount: float = 1.0, at: datetime | None = None) -> bool:
        """Add *amount* to *bin*.

        Observations dated at or before the last decay are dropped, since
        they would be decayed as if they had existed since then. Returns
        ``False`` for a dropped observation.
        """
        if amount < 0:
            raise InvalidArgument(f"Increment amount must not be negative, got {amount}")
        at = as_utc(at) if at else self._now()
        if not self._valid_increment_date(at):
            log.debug("Dropping stale increment of %s in %s dated %s", bin, self.name, at)
            return False

        self.store.increment(self.name, bin, amount)
        return True

    def decay(self, at: datetime | None = None) -> None:
        """Apply exponential decay to every bin, up to *at*."""
        at = as_utc(at) if at else self._now()
        t0 = to_timestamp(self.last_decayed)
        t1 = to_timestamp(at)
        delta_t = t1 - t0
        if delta_t < 0:
            raise InvalidArgument(
                f"Cannot decay {self.name} back to {at}, already decayed to {from_timestamp(t0)}"
            )

        factor = decay_factor(delta_t, self._lifetime.total_seconds())
        ops: list[BatchOp] = [
            SetScore(self.name, bin, score * factor)
            for bin, score in self.store.range_by_score_desc(self.name)
        ]
        ops.append(SetValue(_last_decayed_key(self.name), repr(t1)))
        self.store.batch(ops)
        log.debug("Decayed %d bins in %s by %.6f over %.0fs", len(ops) - 1, self.name, factor, delta_t)

    def scrub(self) -> int:
        """Remove bins scoring at or below the hi-pass filter. Returns the count."""
        removed = self.store.remove_range_by_score(self.name, float("-inf"), HI_PASS_FILTER)
        if removed:
            log.debug("Scrubbed %d bins from %s", removed, self.name)
        return removed

    def fetch(
        self, limit: int | None = None, *, decay: bool = True, scrub: bool = True
    ) -> dict[str, float]:
        """Top *limit* bins by score, highest first. ``None`` or negative means all."""
        self._prepare(decay, scrub)
        return dict(self.store.range_by_score_desc(self.name, limit))

    def fetch_bin(self, bin: str, *, decay: bool = True, scrub: bool = True) -> float | None:
        """Score of *bin*, or ``None`` if it was never incremented or was scrubbed."""
        self._prepare(decay, scrub)
        return self.store.score(self.name, bin)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, decay: bool, scrub: bool) -> None:
        if decay:
            now = self._now()
            # Another writer may already have decayed past our clock
            if to_timestamp(now) > to_timestamp(self.last_decayed):
                self.decay(now)
        if scrub:
            self.scrub()

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _valid_increment_date(self, at: datetime) -> bool:
        return to_timestamp(at) > to_timestamp(self.last_decayed)

    def __repr__(self) -> str:
        return f"DecayingSet({self.name!r}, lifetime={self._lifetime})"


def _lifetime_key(name: str) -> str:
    return f"{name}:{LIFETIME_KEY}"


def _last_decayed_key(name: str) -> str:
    return f"{name}:{LAST_DECAYED_KEY}"


def _check_lifetime(lifetime: timedelta) -> None:
    if not isinstance(lifetime, timedelta):
        raise InvalidArgument(f"Lifetime must be a timedelta, got {type(lifetime).__name__}")
    if lifetime_seconds(lifetime) < 1:
        raise InvalidArgument(f"Lifetime must be at least one second, got {lifetime}")
