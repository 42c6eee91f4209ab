"""Storage backends."""

from forgetsy.storage.base import BatchOp, Delete, SetScore, SetValue, SortedSetStore
from forgetsy.storage.memory_backend import MemoryStore
from forgetsy.storage.sqlite_backend import SQLiteStore

__all__ = [
    "BatchOp",
    "Delete",
    "MemoryStore",
    "SQLiteStore",
    "SetScore",
    "SetValue",
    "SortedSetStore",
]
