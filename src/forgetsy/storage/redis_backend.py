"""Redis storage backend (native sorted sets)."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from forgetsy.exceptions import StoreUnavailable
from forgetsy.storage.base import BatchOp, Delete, SetScore, SetValue

log = logging.getLogger(__name__)


class RedisStore:
    """Maps the store protocol one-to-one onto Redis commands.

    Batches run as a MULTI/EXEC pipeline. Pass an existing *client* to
    share a connection pool, otherwise one is built from *url*.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        socket_timeout: float | None = 5.0,
        client: Any = None,
    ):
        if client is None:
            try:
                import redis
            except ImportError as exc:
                raise ImportError(
                    "Install the redis extra: pip install forgetsy[redis]"
                ) from exc
            client = redis.Redis.from_url(
                url, socket_timeout=socket_timeout, decode_responses=True
            )
        self._redis = client

    @contextmanager
    def _call(self, what: str) -> Iterator[None]:
        from redis.exceptions import RedisError

        try:
            yield
        except RedisError as exc:
            log.error("Redis %s failed: %s", what, exc)
            raise StoreUnavailable(f"Redis {what} failed: {exc}") from exc

    def get(self, key: str) -> str | None:
        with self._call("GET"):
            value = self._redis.get(key)
        if isinstance(value, bytes):
            value = value.decode()
        return value

    def set(self, key: str, value: str) -> None:
        with self._call("SET"):
            self._redis.set(key, value)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with self._call("DEL"):
            return int(self._redis.delete(*keys))

    def increment(self, key: str, member: str, amount: float) -> float:
        with self._call("ZINCRBY"):
            return float(self._redis.zincrby(key, amount, member))

    def score(self, key: str, member: str) -> float | None:
        with self._call("ZSCORE"):
            value = self._redis.zscore(key, member)
        return None if value is None else float(value)

    def range_by_score_desc(self, key: str, limit: int | None = None) -> list[tuple[str, float]]:
        if limit == 0:
            return []
        end = -1 if limit is None or limit < 0 else limit - 1
        with self._call("ZREVRANGE"):
            rows = self._redis.zrevrange(key, 0, end, withscores=True)
        return [
            (member.decode() if isinstance(member, bytes) else member, float(score))
            for member, score in rows
        ]

    def remove_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        with self._call("ZREMRANGEBYSCORE"):
            return int(self._redis.zremrangebyscore(key, min_score, max_score))

    def batch(self, ops: Sequence[BatchOp]) -> None:
        with self._call("MULTI/EXEC"):
            with self._redis.pipeline(transaction=True) as pipe:
                for op in ops:
                    if isinstance(op, SetScore):
                        pipe.zadd(op.key, {op.member: op.score})
                    elif isinstance(op, SetValue):
                        pipe.set(op.key, op.value)
                    elif isinstance(op, Delete):
                        pipe.delete(op.key)
                    else:
                        raise TypeError(f"Unsupported batch op: {op!r}")
                pipe.execute()
