"""Sorted-set store protocol."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class SetScore:
    """Overwrite *member*'s score in the sorted set *key*."""

    key: str
    member: str
    score: float


@dataclass(frozen=True)
class SetValue:
    """Overwrite the plain value stored at *key*."""

    key: str
    value: str


@dataclass(frozen=True)
class Delete:
    """Remove *key*, whether it holds a plain value or a sorted set."""

    key: str


BatchOp = Union[SetScore, SetValue, Delete]


@runtime_checkable
class SortedSetStore(Protocol):
    """Minimal interface a decaying set needs from its backing store.

    Plain keys hold collection metadata, sorted sets hold bin scores.
    Implementations raise :class:`~forgetsy.exceptions.StoreUnavailable`
    when an operation cannot be completed.
    """

    def get(self, key: str) -> str | None:
        """Return the plain value at *key*, or ``None``."""
        ...

    def set(self, key: str, value: str) -> None:
        """Overwrite the plain value at *key*."""
        ...

    def delete(self, *keys: str) -> int:
        """Delete plain keys and sorted sets. Return how many existed."""
        ...

    def increment(self, key: str, member: str, amount: float) -> float:
        """Atomically add *amount* to *member*'s score. Return the new score."""
        ...

    def score(self, key: str, member: str) -> float | None:
        """Return *member*'s score, or ``None`` if it is not in the set."""
        ...

    def range_by_score_desc(self, key: str, limit: int | None = None) -> list[tuple[str, float]]:
        """Top *limit* ``(member, score)`` pairs, highest first. ``None`` means all."""
        ...

    def remove_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        """Remove members scoring within ``[min_score, max_score]``. Return the count."""
        ...

    def batch(self, ops: Sequence[BatchOp]) -> None:
        """Apply every op in *ops* together."""
        ...
