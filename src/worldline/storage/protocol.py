"""Storage protocols for swappable backends.

The storage layer abstracts the persistence of worlds and revisions, enabling:
- Local in-memory (default)
- SQLite (durable, single file)

Usage:
    storage = LocalStorage()
    engine = Engine(storage=storage)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from worldline.core.identity import EntityId, WorldId
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.storage.locks import WorldLocks


@runtime_checkable
class ClockStore(Protocol):
    """Owns each world's pseudotime counter."""

    def create_world(self, world_id: WorldId) -> None:
        """Allocate a world at pseudotime 0.

        Raises:
            DuplicateWorldError: If world_id already exists.
        """
        ...

    def worlds(self) -> Iterator[WorldId]:
        """Iterate all known world ids in creation order."""
        ...

    def current(self, world_id: WorldId) -> Pseudotime:
        """Read the world's current pseudotime.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        ...

    def advance(self, world_id: WorldId) -> Pseudotime:
        """Increment the world's pseudotime and return the new value.

        Only called from inside the coordinator's atomic boundary.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        ...


@runtime_checkable
class RevisionStore(Protocol):
    """Append-only store of revisions tagged with validity intervals."""

    def insert(self, revision: Revision) -> Revision:
        """Append an immutable row. Returns it with its storage id assigned.

        Raises:
            DuplicateEntityError: If the row would be a second open head for
                its (world_id, entity_id), or reuses a storage id.
            UnknownWorldError: If the revision's world does not exist.
        """
        ...

    def close_open_revision(
        self, world_id: WorldId, entity_id: EntityId, at: Pseudotime
    ) -> Revision | None:
        """Close the open head of an entity at pseudotime ``at``.

        Returns:
            The closed revision, or None when the entity has no open head.
        """
        ...

    def open_revision(self, world_id: WorldId, entity_id: EntityId) -> Revision | None:
        """Get the open head of an entity, if any."""
        ...

    def revisions(self, world_id: WorldId, collection: str | None = None) -> Iterator[Revision]:
        """All rows of a world (optionally one collection) in insertion order.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        ...

    def scan(
        self, world_id: WorldId, predicate: Callable[[Revision], bool]
    ) -> Iterator[Revision]:
        """Lazily yield every row of a world matching predicate, unfiltered by time.

        For reporting and debugging only; snapshot reads go through revisions().
        """
        ...


@runtime_checkable
class Storage(ClockStore, RevisionStore, Protocol):
    """A backend implementing both stores behind one atomic boundary.

    The backend owns the per-world lock registry, so every engine and
    coordinator built over the same storage object serializes on the same
    world locks.
    """

    @property
    def locks(self) -> WorldLocks:
        """Per-world lock registry shared by all writers of this storage."""
        ...

    def atomic(self) -> AbstractContextManager[None]:
        """All-or-nothing scope for writes and clock advances.

        On exception every write made inside the scope is undone and the
        exception propagates. Nested scopes join the outermost one. Reads
        inside the scope see the scope's own writes.
        """
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...
