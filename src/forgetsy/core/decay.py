"""Exponential decay and timestamp helpers."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

# Scores at or below this are considered decayed to irrelevance
HI_PASS_FILTER = 0.0001


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """*moment* as an aware datetime; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def to_timestamp(moment: datetime) -> float:
    """Epoch seconds for *moment*; naive datetimes are taken as UTC."""
    return as_utc(moment).timestamp()


def from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def lifetime_seconds(lifetime: timedelta) -> int:
    """Whole seconds of *lifetime*, the unit lifetimes are persisted in."""
    return int(lifetime.total_seconds())


def decay_factor(delta_t: float, lifetime: float) -> float:
    """Return the multiplier applied to every score after *delta_t* seconds.

    ``exp(-delta_t / lifetime)``: 1.0 when no time has passed, tending to
    0.0 as *delta_t* grows past the mean lifetime.
    """
    rate = 1 / lifetime
    return math.exp(-delta_t * rate)
