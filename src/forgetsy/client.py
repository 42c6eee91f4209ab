"""User-facing Forgetsy client."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from forgetsy.config import BACKENDS, ForgetsyConfig
from forgetsy.core.decay import utcnow
from forgetsy.decaying_set import Clock, DecayingSet
from forgetsy.delta import Delta
from forgetsy.exceptions import ConfigError
from forgetsy.storage.base import SortedSetStore
from forgetsy.storage.memory_backend import MemoryStore
from forgetsy.storage.sqlite_backend import SQLiteStore


def open_store(config: ForgetsyConfig) -> SortedSetStore:
    """Build the backing store *config* names."""
    backend = config.storage_backend
    if backend == "sqlite":
        return SQLiteStore(config.db_path)
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        from forgetsy.storage.redis_backend import RedisStore

        return RedisStore(config.redis_url, socket_timeout=config.redis_socket_timeout)
    raise ConfigError(f"Unknown storage backend {backend!r}, expected one of {', '.join(BACKENDS)}")


class Forgetsy:
    """Trending counters over one backing store.

    >>> trends = Forgetsy()
    >>> views = trends.delta("views", lifetime=timedelta(days=7))
    >>> views.increment("home")
    >>> trends.delta("views").fetch(limit=10)
    """

    def __init__(
        self,
        config: ForgetsyConfig | None = None,
        *,
        store: SortedSetStore | None = None,
        db_path: str | Path | None = None,
        clock: Clock = utcnow,
    ):
        self._config = config or ForgetsyConfig()
        if db_path:
            self._config.db_path = Path(db_path)
        self._store = store if store is not None else open_store(self._config)
        self._clock = clock

    @property
    def store(self) -> SortedSetStore:
        return self._store

    def delta(
        self,
        name: str,
        lifetime: timedelta | None = None,
        start: datetime | None = None,
    ) -> Delta:
        """Create delta *name* when *lifetime* is given, otherwise load it."""
        return Delta.open(self._store, name, lifetime, start, clock=self._clock)

    def set(
        self,
        name: str,
        lifetime: timedelta | None = None,
        start: datetime | None = None,
    ) -> DecayingSet:
        """Create set *name* when *lifetime* is given, otherwise load it."""
        return DecayingSet.open(self._store, name, lifetime, start, clock=self._clock)
