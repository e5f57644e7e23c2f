from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from worldline.core.identity import WorldId


class WorldLocks:
    """Mutual exclusion keyed by world id.

    One lock per world, created on first use. Holding the lock for one world
    never blocks another.
    """

    def __init__(self) -> None:
        self._locks: dict[WorldId, threading.Lock] = {}
        self._guard = threading.Lock()
        self._local = threading.local()

    def lock_for(self, world_id: WorldId) -> threading.Lock:
        """Get the lock for a world, creating it if necessary."""
        lock = self._locks.get(world_id)
        if lock is None:
            with self._guard:
                lock = self._locks.get(world_id)
                if lock is None:
                    lock = threading.Lock()
                    self._locks[world_id] = lock
        return lock

    def _held(self) -> set[WorldId]:
        held: set[WorldId] | None = getattr(self._local, "held", None)
        if held is None:
            held = set()
            self._local.held = held
        return held

    def is_held(self, world_id: WorldId) -> bool:
        """Check if the calling thread currently holds the world's lock."""
        return world_id in self._held()

    def holding(self) -> frozenset[WorldId]:
        """Worlds whose locks the calling thread currently holds."""
        return frozenset(self._held())

    @contextmanager
    def hold(self, world_id: WorldId) -> Iterator[None]:
        """Hold a world's lock for the duration of the block.

        Raises:
            RuntimeError: If the calling thread already holds this world's lock.
        """
        if self.is_held(world_id):
            raise RuntimeError(f"World {world_id!r} is already locked by this thread")
        with self.lock_for(world_id):
            held = self._held()
            held.add(world_id)
            try:
                yield
            finally:
                held.discard(world_id)
