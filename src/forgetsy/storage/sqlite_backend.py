"""SQLite storage backend."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from forgetsy.exceptions import StoreUnavailable
from forgetsy.storage.base import BatchOp, Delete, SetScore, SetValue


class SQLiteStore:
    """SQLite emulation of a sorted-set store.

    Plain keys live in ``kv``; every sorted set shares the ``scores``
    table, keyed by ``(key, member)`` and indexed by score.
    """

    def __init__(self, db_path: Path | str, *, timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot create {self.db_path.parent}: {exc}") from exc
        self._init_db()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scores (
                    key TEXT NOT NULL,
                    member TEXT NOT NULL,
                    score REAL NOT NULL,
                    PRIMARY KEY (key, member)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_scores_rank ON scores(key, score DESC)")

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Cannot open {self.db_path}: {exc}") from exc
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(f"PRAGMA busy_timeout={int(self.timeout * 1000)}")
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"SQLite store {self.db_path} failed: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Plain keys
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._conn() as conn:
            _set_value(conn, key, value)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._conn() as conn:
            for key in keys:
                if _delete_key(conn, key):
                    removed += 1
        return removed

    # ------------------------------------------------------------------
    # Sorted sets
    # ------------------------------------------------------------------

    def increment(self, key: str, member: str, amount: float) -> float:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO scores (key, member, score) VALUES (?, ?, ?)
                ON CONFLICT (key, member) DO UPDATE SET score = score + excluded.score
                """,
                (key, member, amount),
            )
            row = conn.execute(
                "SELECT score FROM scores WHERE key = ? AND member = ?", (key, member)
            ).fetchone()
            return row[0]

    def score(self, key: str, member: str) -> float | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT score FROM scores WHERE key = ? AND member = ?", (key, member)
            ).fetchone()
            return row[0] if row else None

    def range_by_score_desc(self, key: str, limit: int | None = None) -> list[tuple[str, float]]:
        # SQLite reads a negative LIMIT as "no limit"
        sql_limit = -1 if limit is None or limit < 0 else limit
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT member, score FROM scores WHERE key = ? ORDER BY score DESC LIMIT ?",
                (key, sql_limit),
            ).fetchall()
            return [(member, score) for member, score in rows]

    def remove_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM scores WHERE key = ? AND score >= ? AND score <= ?",
                (key, min_score, max_score),
            )
            return cur.rowcount

    def batch(self, ops: Sequence[BatchOp]) -> None:
        """Apply *ops* in a single transaction."""
        with self._conn() as conn:
            for op in ops:
                if isinstance(op, SetScore):
                    conn.execute(
                        """
                        INSERT INTO scores (key, member, score) VALUES (?, ?, ?)
                        ON CONFLICT (key, member) DO UPDATE SET score = excluded.score
                        """,
                        (op.key, op.member, op.score),
                    )
                elif isinstance(op, SetValue):
                    _set_value(conn, op.key, op.value)
                elif isinstance(op, Delete):
                    _delete_key(conn, op.key)
                else:
                    raise TypeError(f"Unsupported batch op: {op!r}")


def _set_value(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        "INSERT INTO kv (key, value) VALUES (?, ?) "
        "ON CONFLICT (key) DO UPDATE SET value = excluded.value",
        (key, value),
    )


def _delete_key(conn: sqlite3.Connection, key: str) -> bool:
    plain = conn.execute("DELETE FROM kv WHERE key = ?", (key,)).rowcount
    members = conn.execute("DELETE FROM scores WHERE key = ?", (key,)).rowcount
    return bool(plain or members)
