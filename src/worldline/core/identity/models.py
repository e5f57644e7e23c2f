"""Identity models.

Usage:
    world_id: WorldId = ids.allocate()
    entity_id: EntityId = ids.allocate()
"""

from typing import Protocol, runtime_checkable

type WorldId = str
"""Opaque identifier of an isolated namespace."""

type EntityId = str
"""Opaque, stable identifier of a logical record across all its revisions."""

type StorageId = int
"""Storage-internal row identifier. Never exposed on query results."""


@runtime_checkable
class IdGenerator(Protocol):
    """Produces globally-unique opaque strings for new worlds and entities."""

    def allocate(self) -> str:
        """Return a fresh identifier, never returned before."""
        ...
