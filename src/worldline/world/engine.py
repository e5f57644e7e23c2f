"""Engine: central entry point for worlds, transactions and snapshot queries.

Usage:
    engine = Engine()                         # in-memory, uuid ids
    world_id = engine.create_world()          # pseudotime 0

    engine.transact(world_id, lambda snap: [ProposedChange.new("tasks", content="buy bread")])

    engine.query(world_id, 0, "tasks")        # []
    engine.query(world_id, 1, "tasks")        # [Row(tasks/...: {'content': 'buy bread'})]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import TracebackType

from worldline.config.factory import build_ids, build_storage
from worldline.config.settings import StorageSettings
from worldline.core.identity import EntityId, IdGenerator, WorldId
from worldline.core.query import FilterSpec, OrderSpec
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.storage.allocator import UUIDAllocator
from worldline.storage.local import LocalStorage
from worldline.storage.protocol import Storage
from worldline.tracing.audit import entity_history
from worldline.tracing.models import CommitRecord
from worldline.tracing.protocol import CommitObserver
from worldline.world.coordinator import Mutation, TransactionCoordinator
from worldline.world.snapshot import Row, Snapshot
from worldline.world.world import World

logger = logging.getLogger(__name__)


class Engine:
    """Owns the storage backend, id generator and transaction coordinator.

    Writes go through ``transact``; reads through ``snapshot`` or the
    ``query``/``get`` shortcuts, which take no lock. World locks come from
    the storage, so several engines may share one storage object.

    Args:
        storage: Backend (default: fresh LocalStorage).
        ids: Id generator for worlds and entities (default: uuid4).
        observers: Commit observers notified after each commit.
    """

    def __init__(
        self,
        storage: Storage | None = None,
        ids: IdGenerator | None = None,
        observers: Iterable[CommitObserver] = (),
    ):
        self._storage = storage if storage is not None else LocalStorage()
        self._ids = ids if ids is not None else UUIDAllocator()
        self._coordinator = TransactionCoordinator(self._storage, self._ids, observers=observers)

    @classmethod
    def from_settings(
        cls,
        settings: StorageSettings | None = None,
        observers: Iterable[CommitObserver] = (),
    ) -> Engine:
        """Build an engine from settings (default: read from the environment)."""
        settings = settings or StorageSettings()
        return cls(storage=build_storage(settings), ids=build_ids(settings), observers=observers)

    @property
    def storage(self) -> Storage:
        return self._storage

    def add_observer(self, observer: CommitObserver) -> None:
        """Register a commit observer."""
        self._coordinator.add_observer(observer)

    def create_world(self, world_id: WorldId | None = None) -> WorldId:
        """Allocate a new world at pseudotime 0.

        Args:
            world_id: Explicit id (default: minted by the id generator).

        Returns:
            The world id.

        Raises:
            DuplicateWorldError: If an explicit world_id already exists.
        """
        world_id = world_id if world_id is not None else self._ids.allocate()
        self._storage.create_world(world_id)
        logger.debug("Created world %s", world_id)
        return world_id

    def world(self, world_id: WorldId) -> World:
        """Handle for an existing world.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        self._storage.current(world_id)
        return World(self, world_id)

    def worlds(self) -> list[WorldId]:
        """All world ids in creation order."""
        return list(self._storage.worlds())

    def pseudotime(self, world_id: WorldId) -> Pseudotime:
        """Current pseudotime of a world.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        return self._storage.current(world_id)

    def transact(self, world_id: WorldId, mutation: Mutation) -> CommitRecord:
        """Run one transaction on a world. See TransactionCoordinator.transact."""
        return self._coordinator.transact(world_id, mutation)

    def snapshot(self, world_id: WorldId, pseudotime: Pseudotime | None = None) -> Snapshot:
        """View of a world as of pseudotime (default: current).

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        current = self._storage.current(world_id)
        return Snapshot(self._storage, world_id, current if pseudotime is None else pseudotime)

    def query(
        self,
        world_id: WorldId,
        pseudotime: Pseudotime,
        collection: str,
        where: FilterSpec = None,
        order_by: OrderSpec = None,
    ) -> list[Row]:
        """Rows of a collection as of pseudotime. Empty beyond the current pseudotime."""
        return self.snapshot(world_id, pseudotime).query(collection, where, order_by)

    def get(self, world_id: WorldId, pseudotime: Pseudotime, entity_id: EntityId) -> Row | None:
        """One entity as of pseudotime, or None when not visible."""
        return self.snapshot(world_id, pseudotime).get(entity_id)

    def history(self, world_id: WorldId, entity_id: EntityId) -> list[Revision]:
        """Every stored revision of an entity, oldest first."""
        return entity_history(self._storage, world_id, entity_id)

    def close(self) -> None:
        """Release the storage backend."""
        self._storage.close()

    def __enter__(self) -> Engine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
