"""Bounded in-memory commit log."""

from __future__ import annotations

import threading
from collections import deque

from worldline.core.identity import WorldId
from worldline.core.types import Pseudotime
from worldline.tracing.models import CommitRecord


class InMemoryCommitLog:
    """CommitObserver keeping the most recent commit records in memory.

    Thread-safe. Oldest records are evicted once ``max_records`` is reached.

    Args:
        max_records: Capacity of the log (None for unbounded).
    """

    def __init__(self, max_records: int | None = 1000):
        self._records: deque[CommitRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def on_commit(self, record: CommitRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self, world_id: WorldId | None = None) -> list[CommitRecord]:
        """Stored records in commit order, optionally for one world."""
        with self._lock:
            return [r for r in self._records if world_id is None or r.world_id == world_id]

    def get(self, world_id: WorldId, pseudotime: Pseudotime) -> CommitRecord | None:
        """Record of the commit that produced pseudotime on world, if still stored."""
        with self._lock:
            for record in self._records:
                if record.world_id == world_id and record.pseudotime == pseudotime:
                    return record
        return None

    def clear(self) -> None:
        """Drop all stored records."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
