"""Error taxonomy.

Every error raised by worldline derives from WorldlineError, so callers can
catch the whole family at one seam.
"""

from __future__ import annotations

from typing import Any


class WorldlineError(Exception):
    """Base exception for worldline."""


class UnknownWorldError(WorldlineError, LookupError):
    """Operation references a world id that does not exist."""

    def __init__(self, world_id: Any):
        super().__init__(f"Unknown world {world_id!r}")
        self.world_id = world_id


class DuplicateWorldError(WorldlineError):
    """World id is already allocated."""


class NotFoundError(WorldlineError, KeyError):
    """Point lookup for an entity at a pseudotime found nothing."""

    def __init__(self, entity_id: Any, pseudotime: int):
        super().__init__(f"Entity {entity_id!r} not visible at pseudotime {pseudotime}")
        self.entity_id = entity_id
        self.pseudotime = pseudotime

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class DuplicateEntityError(WorldlineError):
    """Structural uniqueness violated: a second open head, or a reused storage id."""


class StorageError(WorldlineError):
    """Backend I/O failure."""


class TransactionAbortedError(WorldlineError):
    """A transaction failed and every write it made was rolled back.

    The underlying failure is available as ``__cause__``.
    """

    def __init__(self, message: str, *, world_id: Any, pseudotime: int | None):
        super().__init__(message)
        self.world_id = world_id
        self.pseudotime = pseudotime
