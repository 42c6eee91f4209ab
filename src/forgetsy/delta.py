"""Trend scores: a fast decaying set normalized by a slow one."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from forgetsy.core.decay import as_utc, utcnow
from forgetsy.decaying_set import Clock, DecayingSet
from forgetsy.exceptions import InvalidArgument, NotFound
from forgetsy.storage.base import SortedSetStore

log = logging.getLogger(__name__)

NORMAL_TIME_MULTIPLIER = 2


def baseline_name(name: str) -> str:
    return f"{name}_{NORMAL_TIME_MULTIPLIER}t"


class Delta:
    """Relative "how hot is this right now" scores.

    Every observation goes into two decaying sets: the *primary*, with the
    requested lifetime, and the *baseline*, living twice as long and
    reaching twice as far back. A bin's trend score is its primary score
    divided by its baseline score, so a steady stream of observations
    settles at a constant ratio while a burst pushes it up.

    Use :meth:`create`, :meth:`reify` or :meth:`open`; the baseline is
    always derived from the primary and never built on its own.
    """

    def __init__(self, primary: DecayingSet, baseline: DecayingSet):
        self.primary = primary
        self.baseline = baseline

    @property
    def name(self) -> str:
        return self.primary.name

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
    ) -> Delta:
        """Create both sets. *start* defaults to one *lifetime* ago."""
        if not isinstance(lifetime, timedelta):
            raise InvalidArgument(f"Lifetime must be a timedelta, got {type(lifetime).__name__}")
        now = as_utc(clock())
        start = as_utc(start) if start else now - lifetime

        log.info("Creating delta %s with lifetime %s and start time %s", name, lifetime, start)
        primary = DecayingSet.create(store, name, lifetime, start, clock=clock)

        # Baseline spans twice the primary's age, for retrospective observations
        baseline_lifetime = primary.lifetime * NORMAL_TIME_MULTIPLIER
        baseline_start = now - (now - start) * NORMAL_TIME_MULTIPLIER
        log.debug(
            "Baseline set %s with lifetime %s and start time %s",
            baseline_name(name),
            baseline_lifetime,
            baseline_start,
        )
        baseline = DecayingSet.create(
            store, baseline_name(name), baseline_lifetime, baseline_start, clock=clock
        )
        return cls(primary, baseline)

    @classmethod
    def reify(cls, store: SortedSetStore, name: str, *, clock: Clock = utcnow) -> Delta:
        """Load both sets, or raise :class:`NotFound` if either is missing."""
        log.info("Reifying delta %s", name)
        try:
            primary = DecayingSet.reify(store, name, clock=clock)
            baseline = DecayingSet.reify(store, baseline_name(name), clock=clock)
        except NotFound as exc:
            raise NotFound(
                name, f"Delta {name!r} doesn't exist (pass lifetime to create it)"
            ) from exc
        return cls(primary, baseline)

    @classmethod
    def open(
        cls,
        store: SortedSetStore,
        name: str,
        lifetime: timedelta | None = None,
        start: datetime | None = None,
        *,
        clock: Clock = utcnow,
    ) -> Delta:
        """Create when *lifetime* is given, otherwise reify."""
        if lifetime is not None:
            return cls.create(store, name, lifetime, start, clock=clock)
        if start is not None:
            raise InvalidArgument("Must provide lifetime for new delta")
        return cls.reify(store, name, clock=clock)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def increment(self, bin: str, amount: float = 1.0, at: datetime | None = None) -> None:
        """Record an observation in both sets.

        Each set drops it independently if it predates that set's last decay.
        """
        log.debug("Incrementing %s in %s by %s", bin, self.name, amount)
        for decaying_set in self._sets():
            decaying_set.increment(bin, amount, at)

    def decay(self) -> None:
        for decaying_set in self._sets():
            decaying_set.decay()

    def scrub(self) -> int:
        return sum(decaying_set.scrub() for decaying_set in self._sets())

    def fetch(
        self, limit: int | None = None, *, decay: bool = True, scrub: bool = True
    ) -> dict[str, float]:
        """Trend scores of the top *limit* bins.

        Bins keep the primary set's order (highest raw score first), not the
        order of their trend scores. A bin missing from the baseline scores
        ``0.0``.
        """
        counts = self.primary.fetch(decay=decay, scrub=scrub)
        norm = self.baseline.fetch(decay=decay, scrub=scrub)

        result: dict[str, float] = {}
        for bin, score in counts.items():
            if limit is not None and 0 <= limit <= len(result):
                break
            norm_score = norm.get(bin)
            result[bin] = 0.0 if norm_score is None else score / norm_score
        return result

    def fetch_bin(self, bin: str, *, decay: bool = True, scrub: bool = True) -> float | None:
        """Trend score of *bin*, or ``None`` when it has no baseline.

        Unlike :meth:`fetch`, a missing baseline is reported as ``None``
        rather than folded into ``0.0``.
        """
        counts = self.primary.fetch(decay=decay, scrub=scrub)
        norm = self.baseline.fetch(decay=decay, scrub=scrub)

        norm_score = norm.get(bin)
        if norm_score is None:
            return None
        return counts.get(bin, 0.0) / norm_score

    def _sets(self) -> tuple[DecayingSet, DecayingSet]:
        return (self.primary, self.baseline)

    def __repr__(self) -> str:
        return f"Delta({self.name!r}, lifetime={self.primary.lifetime})"
