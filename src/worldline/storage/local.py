"""Local in-memory storage implementation.

Simple dict-based storage suitable for single-process use and testing.
Rows of each world live in a list in insertion order; open heads are indexed
by (world_id, entity_id).

Usage:
    storage = LocalStorage()
    engine = Engine(storage=storage)
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from worldline.core.errors import DuplicateEntityError, DuplicateWorldError, UnknownWorldError
from worldline.core.identity import EntityId, StorageId, WorldId
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.storage.locks import WorldLocks

logger = logging.getLogger(__name__)

type _Undo = Callable[[], None]


class LocalStorage:
    """In-memory backend implementing ClockStore, RevisionStore and atomic().

    Structure:
        _clocks[world_id] = pseudotime
        _rows[world_id] = [revision, ...]           # insertion order
        _heads[(world_id, entity_id)] = row index   # open revision only

    Atomicity uses a per-thread undo journal: every mutation made inside
    atomic() records its inverse, replayed in reverse on failure. The
    internal lock is held per operation, never across a whole transaction,
    so transactions on different worlds do not contend.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._clocks: dict[WorldId, Pseudotime] = {}
        self._rows: dict[WorldId, list[Revision]] = {}
        self._heads: dict[tuple[WorldId, EntityId], int] = {}
        self._storage_ids: set[StorageId] = set()
        self._next_storage_id = 1
        self._local = threading.local()
        self._locks = WorldLocks()

    @property
    def locks(self) -> WorldLocks:
        """Per-world lock registry for writers of this storage."""
        return self._locks

    def _journal(self) -> list[_Undo] | None:
        return getattr(self._local, "journal", None)

    def _record(self, undo: _Undo) -> None:
        journal = self._journal()
        if journal is not None:
            journal.append(undo)

    def _world_rows(self, world_id: WorldId) -> list[Revision]:
        rows = self._rows.get(world_id)
        if rows is None:
            raise UnknownWorldError(world_id)
        return rows

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """All-or-nothing scope for the calling thread's writes.

        Nested scopes join the outermost one.
        """
        if self._journal() is not None:
            yield
            return

        journal: list[_Undo] = []
        self._local.journal = journal
        try:
            yield
        except BaseException:
            with self._lock:
                for undo in reversed(journal):
                    undo()
            logger.debug("Rolled back %d local write(s)", len(journal))
            raise
        finally:
            self._local.journal = None

    # Clock store

    def create_world(self, world_id: WorldId) -> None:
        """Allocate a world at pseudotime 0.

        Args:
            world_id: Identifier of the new world.

        Raises:
            DuplicateWorldError: If world_id already exists.
        """
        with self._lock:
            if world_id in self._clocks:
                raise DuplicateWorldError(f"World {world_id!r} already exists")
            self._clocks[world_id] = 0
            self._rows[world_id] = []

            def undo() -> None:
                del self._clocks[world_id]
                del self._rows[world_id]

            self._record(undo)

    def worlds(self) -> Iterator[WorldId]:
        """Iterate known world ids in creation order."""
        with self._lock:
            return iter(list(self._clocks))

    def current(self, world_id: WorldId) -> Pseudotime:
        """Read a world's current pseudotime.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        with self._lock:
            try:
                return self._clocks[world_id]
            except KeyError:
                raise UnknownWorldError(world_id) from None

    def advance(self, world_id: WorldId) -> Pseudotime:
        """Increment a world's pseudotime and return the new value.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        with self._lock:
            previous = self.current(world_id)
            self._clocks[world_id] = previous + 1

            def undo() -> None:
                self._clocks[world_id] = previous

            self._record(undo)
            return previous + 1

    # Revision store

    def insert(self, revision: Revision) -> Revision:
        """Append a revision, assigning a storage id when it has none.

        Args:
            revision: Row to append.

        Returns:
            The stored revision.

        Raises:
            UnknownWorldError: If the revision's world does not exist.
            DuplicateEntityError: If the entity already has an open head, or the
                storage id is taken.
        """
        with self._lock:
            rows = self._world_rows(revision.world_id)
            key = (revision.world_id, revision.entity_id)
            if revision.is_open() and key in self._heads:
                raise DuplicateEntityError(
                    f"Entity {revision.entity_id!r} already has an open revision "
                    f"in world {revision.world_id!r}"
                )

            if revision.storage_id is None:
                sid = self._next_storage_id
                self._next_storage_id += 1
                revision = revision.stored(sid)
            elif revision.storage_id in self._storage_ids:
                raise DuplicateEntityError(f"Storage id {revision.storage_id} already used")
            else:
                sid = revision.storage_id
                self._next_storage_id = max(self._next_storage_id, sid + 1)

            rows.append(revision)
            index = len(rows) - 1
            self._storage_ids.add(sid)
            if revision.is_open():
                self._heads[key] = index

            # Undos replay newest-first, so this row is still at index.
            def undo() -> None:
                del rows[index]
                self._storage_ids.discard(sid)
                if self._heads.get(key) == index:
                    del self._heads[key]

            self._record(undo)
            return revision

    def close_open_revision(
        self, world_id: WorldId, entity_id: EntityId, at: Pseudotime
    ) -> Revision | None:
        """Close an entity's open head at pseudotime ``at``.

        Returns:
            The closed revision, or None if the entity has no open head.
        """
        with self._lock:
            rows = self._world_rows(world_id)
            key = (world_id, entity_id)
            index = self._heads.pop(key, None)
            if index is None:
                return None

            previous = rows[index]
            closed = previous.closed(at)
            rows[index] = closed

            def undo() -> None:
                rows[index] = previous
                self._heads[key] = index

            self._record(undo)
            return closed

    def open_revision(self, world_id: WorldId, entity_id: EntityId) -> Revision | None:
        """Get an entity's open head, or None."""
        with self._lock:
            rows = self._world_rows(world_id)
            index = self._heads.get((world_id, entity_id))
            return None if index is None else rows[index]

    def revisions(self, world_id: WorldId, collection: str | None = None) -> Iterator[Revision]:
        """Iterate a world's rows in insertion order.

        The rows are copied under the lock, so the iterator is stable against
        concurrent writes.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        with self._lock:
            rows = list(self._world_rows(world_id))
        if collection is None:
            return iter(rows)
        return (r for r in rows if r.collection == collection)

    def scan(
        self, world_id: WorldId, predicate: Callable[[Revision], bool]
    ) -> Iterator[Revision]:
        """Lazily yield a world's rows matching predicate, regardless of time.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        return (r for r in self.revisions(world_id) if predicate(r))

    def close(self) -> None:
        """Nothing to release for in-memory storage."""

    def snapshot(self) -> bytes:
        """Serialize entire state as JSON.

        Payload values must be JSON-serializable.

        Returns:
            UTF-8 encoded JSON document.
        """
        with self._lock:
            state = {
                "worlds": dict(self._clocks),
                "revisions": [r.to_dict() for rows in self._rows.values() for r in rows],
            }
        return json.dumps(state, sort_keys=True).encode("utf-8")

    def restore(self, data: bytes) -> None:
        """Replace entire state from a snapshot() document.

        Args:
            data: Bytes previously produced by snapshot().
        """
        state = json.loads(data)
        with self._lock:
            self._clocks = {}
            self._rows = {}
            self._heads = {}
            self._storage_ids = set()
            self._next_storage_id = 1
            for world_id, pseudotime in state["worlds"].items():
                self._clocks[world_id] = int(pseudotime)
                self._rows[world_id] = []
            rows = sorted(state["revisions"], key=lambda r: r["storage_id"])
            for row in rows:
                self.insert(
                    Revision(
                        world_id=row["world_id"],
                        entity_id=row["entity_id"],
                        collection=row["collection"],
                        payload=row["payload"],
                        created_at=row["created_at"],
                        valid_before=row["valid_before"],
                        deleted=row["deleted"],
                        storage_id=row["storage_id"],
                    )
                )
