"""World: handle bound to one isolated namespace.

Usage:
    world = engine.world(world_id)

    world.transact(lambda snap: [ProposedChange.new("tasks", content="buy bread")])
    world.pseudotime                       # 1
    world.query("tasks")                   # rows as of now
    world.query("tasks", pseudotime=0)     # []
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from worldline.core.identity import EntityId, WorldId
from worldline.core.query import FilterSpec, OrderSpec
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.tracing.models import CommitRecord
from worldline.world.snapshot import Row, Snapshot

if TYPE_CHECKING:
    from worldline.world.coordinator import Mutation
    from worldline.world.engine import Engine


class World:
    """Convenience wrapper for repeated operations on one world.

    Holds no state of its own; every call goes through the engine.
    """

    def __init__(self, engine: Engine, world_id: WorldId):
        self._engine = engine
        self._id = world_id

    @property
    def id(self) -> WorldId:
        return self._id

    @property
    def pseudotime(self) -> Pseudotime:
        """Current pseudotime of this world."""
        return self._engine.pseudotime(self._id)

    def __repr__(self) -> str:
        return f"World({self._id!r})"

    def transact(self, mutation: Mutation) -> CommitRecord:
        """Run one transaction on this world."""
        return self._engine.transact(self._id, mutation)

    def snapshot(self, pseudotime: Pseudotime | None = None) -> Snapshot:
        """View as of pseudotime (default: current)."""
        return self._engine.snapshot(self._id, pseudotime)

    def query(
        self,
        collection: str,
        where: FilterSpec = None,
        pseudotime: Pseudotime | None = None,
        order_by: OrderSpec = None,
    ) -> list[Row]:
        """Rows of a collection as of pseudotime (default: current)."""
        return self.snapshot(pseudotime).query(collection, where, order_by)

    def get(self, entity_id: EntityId, pseudotime: Pseudotime | None = None) -> Row | None:
        """One entity as of pseudotime (default: current), or None."""
        return self.snapshot(pseudotime).get(entity_id)

    def history(self, entity_id: EntityId) -> list[Revision]:
        """Every stored revision of an entity, oldest first."""
        return self._engine.history(self._id, entity_id)
