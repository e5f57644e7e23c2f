"""Storage backends."""

from worldline.storage.allocator import SequentialAllocator, UUIDAllocator
from worldline.storage.local import LocalStorage
from worldline.storage.protocol import ClockStore, RevisionStore, Storage
from worldline.storage.sqlite import SQLiteStorage

__all__ = [
    "Storage",
    "ClockStore",
    "RevisionStore",
    "LocalStorage",
    "SQLiteStorage",
    "UUIDAllocator",
    "SequentialAllocator",
]
