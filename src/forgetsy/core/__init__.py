"""Forgetsy core decay math and time helpers."""

from forgetsy.core.decay import (
    HI_PASS_FILTER,
    as_utc,
    decay_factor,
    from_timestamp,
    to_timestamp,
    utcnow,
)

__all__ = [
    "HI_PASS_FILTER",
    "as_utc",
    "decay_factor",
    "from_timestamp",
    "to_timestamp",
    "utcnow",
]
