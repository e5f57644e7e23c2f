"""Transaction coordinator: one atomic revision step per call.

Usage:
    coordinator = TransactionCoordinator(storage, ids=UUIDAllocator())

    def rename_beer(snap: Snapshot) -> list[ProposedChange]:
        beer = snap.first("tasks", Where(content="buy beer"))
        return [beer.revise(content="buy whisky")] if beer else []

    record = coordinator.transact(world_id, rename_beer)
    record.pseudotime  # previous pseudotime + 1
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from worldline.core.errors import (
    DuplicateEntityError,
    TransactionAbortedError,
    UnknownWorldError,
    WorldlineError,
)
from worldline.core.identity import EntityId, IdGenerator, WorldId
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.storage.locks import WorldLocks
from worldline.storage.protocol import Storage
from worldline.tracing.models import CommitRecord
from worldline.tracing.protocol import CommitObserver
from worldline.world.changes import ChangeSet, ProposedChange, normalize_changes
from worldline.world.snapshot import Snapshot

logger = logging.getLogger(__name__)

type Mutation = Callable[[Snapshot], ChangeSet]
"""Caller logic: observes a snapshot pinned to the pre-commit pseudotime and
returns the ordered changes to apply."""


@dataclass
class _Applied:
    created: list[EntityId] = field(default_factory=list)
    revised: list[EntityId] = field(default_factory=list)
    deleted: list[EntityId] = field(default_factory=list)


class TransactionCoordinator:
    """Runs mutations against a world under its lock and the storage atomic boundary.

    Steps per call, terminal on commit or abort:
        1. Begin: lock the world, open the atomic scope, read pseudotime p.
        2. Propose: run the mutation against a snapshot pinned to p.
        3. Apply: per change, close the entity's open head at p, then insert
           the new revision created at p + 1.
        4. Commit: advance the clock to p + 1, leave the scope, unlock.
        5. Abort: on any failure in 2-4 every write is rolled back.

    Args:
        storage: Backend providing both stores and atomic().
        ids: Generator for new entity ids.
        locks: Per-world lock registry (default: the storage's own, shared
            by every coordinator over that storage).
        observers: Commit observers notified after each commit.
    """

    def __init__(
        self,
        storage: Storage,
        ids: IdGenerator,
        locks: WorldLocks | None = None,
        observers: Iterable[CommitObserver] = (),
    ):
        self._storage = storage
        self._ids = ids
        self._locks = locks if locks is not None else storage.locks
        self._observers: list[CommitObserver] = list(observers)

    @property
    def locks(self) -> WorldLocks:
        return self._locks

    def add_observer(self, observer: CommitObserver) -> None:
        """Register an observer for subsequent commits."""
        self._observers.append(observer)

    def transact(self, world_id: WorldId, mutation: Mutation) -> CommitRecord:
        """Run one transaction on a world.

        An empty change list still commits and advances pseudotime by one.

        Args:
            world_id: Target world.
            mutation: Function from the pinned snapshot to proposed changes.

        Returns:
            Record of the commit.

        Raises:
            UnknownWorldError: If world_id does not exist.
            TransactionAbortedError: If called from inside another mutation on
                this thread, or if the mutation, an apply step or the commit
                failed. Nothing was written; the cause is chained.
        """
        if self._locks.holding():
            raise TransactionAbortedError(
                f"Nested transaction on world {world_id!r} from inside a mutation",
                world_id=world_id,
                pseudotime=None,
            )

        started = time.perf_counter()
        with self._locks.hold(world_id):
            pseudotime, applied = self._run(world_id, mutation)
            duration_ms = (time.perf_counter() - started) * 1000

        record = CommitRecord(
            world_id=world_id,
            pseudotime=pseudotime + 1,
            created=tuple(applied.created),
            revised=tuple(applied.revised),
            deleted=tuple(applied.deleted),
            timestamp=time.time(),
            duration_ms=duration_ms,
        )
        logger.debug(
            "Committed world %s at pseudotime %d (%d change(s))",
            world_id,
            record.pseudotime,
            len(record.entity_ids),
        )
        for observer in self._observers:
            observer.on_commit(record)
        return record

    def _run(self, world_id: WorldId, mutation: Mutation) -> tuple[Pseudotime, _Applied]:
        pseudotime: Pseudotime | None = None
        try:
            with self._storage.atomic():
                pseudotime = self._storage.current(world_id)
                snapshot = Snapshot(self._storage, world_id, pseudotime)
                changes = normalize_changes(mutation(snapshot))
                applied = self._apply(world_id, pseudotime, changes)

                committed = self._storage.advance(world_id)
                if committed != pseudotime + 1:
                    raise WorldlineError(
                        f"Clock of world {world_id!r} advanced to {committed}, "
                        f"expected {pseudotime + 1}"
                    )
        except Exception as e:
            if pseudotime is None and isinstance(e, UnknownWorldError):
                raise
            logger.warning(
                "Aborted transaction on world %s at pseudotime %s: %s", world_id, pseudotime, e
            )
            raise TransactionAbortedError(
                f"Transaction on world {world_id!r} aborted: {e}",
                world_id=world_id,
                pseudotime=pseudotime,
            ) from e
        return pseudotime, applied

    def _apply(
        self, world_id: WorldId, pseudotime: Pseudotime, changes: list[ProposedChange]
    ) -> _Applied:
        applied = _Applied()
        seen: set[EntityId] = set()

        for change in changes:
            if change.is_creation():
                entity_id = self._ids.allocate()
            else:
                entity_id = change.entity_id
            if entity_id in seen:
                raise DuplicateEntityError(
                    f"Entity {entity_id!r} proposed more than once in one transaction"
                )
            seen.add(entity_id)

            closed = self._storage.close_open_revision(world_id, entity_id, at=pseudotime)
            self._storage.insert(
                Revision(
                    world_id=world_id,
                    entity_id=entity_id,
                    collection=change.collection,
                    payload=change.payload,
                    created_at=pseudotime + 1,
                    deleted=change.deleted,
                )
            )

            if change.deleted:
                applied.deleted.append(entity_id)
            elif closed is None:
                applied.created.append(entity_id)
            else:
                applied.revised.append(entity_id)
        return applied
