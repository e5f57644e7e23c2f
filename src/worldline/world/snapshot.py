"""As-of views of a world.

Usage:
    snap = engine.snapshot(world_id, pseudotime=2)

    # Collection queries
    for row in snap.query("tasks", Where(done=False), order_by="content"):
        print(row.entity_id, row["content"])

    # Point lookups
    row = snap.get(entity_id)        # Row or None
    row = snap[entity_id]            # Row, or NotFoundError
    if entity_id in snap:
        ...

    # Proposing changes from rows (inside a transaction)
    return [row.revise(content="buy whisky"), other.delete()]
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from worldline.core.errors import NotFoundError
from worldline.core.identity import EntityId, WorldId
from worldline.core.query import FilterSpec, OrderSpec, normalize_filter, sort_key
from worldline.core.revision import Revision, visible
from worldline.core.types import Payload, Pseudotime
from worldline.storage.protocol import Storage
from worldline.world.changes import ProposedChange


class Row(Mapping[str, Any]):
    """Read-only view of one entity's payload at a snapshot.

    Behaves as a mapping of payload field to value. The logical entity id and
    collection ride along as attributes; storage-internal ids are stripped.
    """

    __slots__ = ("_payload", "collection", "entity_id")

    def __init__(self, entity_id: EntityId, collection: str, payload: Payload):
        self.entity_id = entity_id
        self.collection = collection
        self._payload = MappingProxyType(dict(payload))

    @classmethod
    def from_revision(cls, revision: Revision) -> Row:
        """Project a revision to its logical row."""
        return cls(revision.entity_id, revision.collection, revision.payload)

    def __getitem__(self, key: str) -> Any:
        return self._payload[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._payload)

    def __len__(self) -> int:
        return len(self._payload)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return (
                self.entity_id == other.entity_id
                and self.collection == other.collection
                and dict(self._payload) == dict(other._payload)
            )
        return super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Row({self.collection}/{self.entity_id}: {dict(self._payload)!r})"

    def to_dict(self) -> dict[str, Any]:
        """Flat dict annotated with ``entity_id`` and ``collection``."""
        return {"entity_id": self.entity_id, "collection": self.collection, **self._payload}

    def revise(self, **fields: Any) -> ProposedChange:
        """Propose a new revision of this entity with fields merged into the payload."""
        return ProposedChange(
            collection=self.collection,
            payload={**self._payload, **fields},
            entity_id=self.entity_id,
        )

    def delete(self) -> ProposedChange:
        """Propose a soft deletion of this entity, keeping its last payload."""
        return ProposedChange(
            collection=self.collection,
            payload=dict(self._payload),
            entity_id=self.entity_id,
            deleted=True,
        )


class Snapshot:
    """Read-only view of one world as of one pseudotime.

    Equivalent to the database as it looked immediately after the
    transaction that produced ``pseudotime``. Performs no mutation and takes
    no world lock, so any number of snapshots may be read concurrently with
    in-flight transactions.

    A pseudotime beyond the world's current value has no history yet: every
    query is empty and every lookup misses.

    Args:
        storage: Backend to read from.
        world_id: World to view.
        pseudotime: Pseudotime to pin the view to.

    Raises:
        ValueError: If pseudotime is negative.
    """

    def __init__(self, storage: Storage, world_id: WorldId, pseudotime: Pseudotime):
        if pseudotime < 0:
            raise ValueError(f"Pseudotime must be >= 0, got {pseudotime}")
        self._storage = storage
        self._world_id = world_id
        self._pseudotime = pseudotime

    @property
    def world_id(self) -> WorldId:
        """World this snapshot views."""
        return self._world_id

    @property
    def pseudotime(self) -> Pseudotime:
        """Pseudotime this snapshot is pinned to."""
        return self._pseudotime

    def __repr__(self) -> str:
        return f"Snapshot(world={self._world_id!r}, pseudotime={self._pseudotime})"

    def _live(self, collection: str | None = None) -> Iterator[Revision]:
        if self._pseudotime > self._storage.current(self._world_id):
            return iter(())
        return visible(self._storage.revisions(self._world_id, collection), self._pseudotime)

    def query(
        self,
        collection: str,
        where: FilterSpec = None,
        order_by: OrderSpec = None,
    ) -> list[Row]:
        """Rows of a collection visible at this pseudotime.

        Args:
            collection: Collection to read.
            where: Payload filter (Where, mapping of equalities, or predicate).
            order_by: Field name or key function; insertion order when None.

        Returns:
            Matching rows.
        """
        condition = normalize_filter(where)
        rows = [
            Row.from_revision(r) for r in self._live(collection) if condition.matches(r.payload)
        ]
        key = sort_key(order_by)
        if key is not None:
            rows.sort(key=key)
        return rows

    def first(self, collection: str, where: FilterSpec = None) -> Row | None:
        """First matching row in insertion order, or None."""
        condition = normalize_filter(where)
        for revision in self._live(collection):
            if condition.matches(revision.payload):
                return Row.from_revision(revision)
        return None

    def count(self, collection: str, where: FilterSpec = None) -> int:
        """Number of matching rows."""
        condition = normalize_filter(where)
        return sum(1 for r in self._live(collection) if condition.matches(r.payload))

    def get(self, entity_id: EntityId) -> Row | None:
        """Look up one entity. None when it is absent or deleted at this pseudotime."""
        for revision in self._live():
            if revision.entity_id == entity_id:
                return Row.from_revision(revision)
        return None

    def __getitem__(self, entity_id: EntityId) -> Row:
        row = self.get(entity_id)
        if row is None:
            raise NotFoundError(entity_id, self._pseudotime)
        return row

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self.get(entity_id) is not None

    def collections(self) -> list[str]:
        """Names of collections with at least one visible row, in first-seen order."""
        seen: dict[str, None] = {}
        for revision in self._live():
            seen.setdefault(revision.collection, None)
        return list(seen)

    def rows(self) -> list[Row]:
        """Every visible row across all collections, in insertion order."""
        return [Row.from_revision(r) for r in self._live()]
