"""In-process storage backend."""

from __future__ import annotations

import threading
from collections.abc import Sequence

from forgetsy.storage.base import BatchOp, Delete, SetScore, SetValue


class MemoryStore:
    """Dict-backed sorted-set store, guarded by one lock.

    State lives only as long as the instance; share one instance between
    sets and deltas that should see each other's writes.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._sets: dict[str, dict[str, float]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                plain = self._values.pop(key, None)
                members = self._sets.pop(key, None)
                if plain is not None or members:
                    removed += 1
        return removed

    def increment(self, key: str, member: str, amount: float) -> float:
        with self._lock:
            members = self._sets.setdefault(key, {})
            members[member] = members.get(member, 0.0) + amount
            return members[member]

    def score(self, key: str, member: str) -> float | None:
        with self._lock:
            return self._sets.get(key, {}).get(member)

    def range_by_score_desc(self, key: str, limit: int | None = None) -> list[tuple[str, float]]:
        with self._lock:
            ranked = sorted(self._sets.get(key, {}).items(), key=lambda kv: kv[1], reverse=True)
        if limit is None or limit < 0:
            return ranked
        return ranked[:limit]

    def remove_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        with self._lock:
            members = self._sets.get(key, {})
            doomed = [m for m, s in members.items() if min_score <= s <= max_score]
            for member in doomed:
                del members[member]
            return len(doomed)

    def batch(self, ops: Sequence[BatchOp]) -> None:
        with self._lock:
            for op in ops:
                if isinstance(op, SetScore):
                    self._sets.setdefault(op.key, {})[op.member] = op.score
                elif isinstance(op, SetValue):
                    self._values[op.key] = op.value
                elif isinstance(op, Delete):
                    self._values.pop(op.key, None)
                    self._sets.pop(op.key, None)
                else:
                    raise TypeError(f"Unsupported batch op: {op!r}")
