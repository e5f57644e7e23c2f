"""Data models for tracing infrastructure.

These models are storage-agnostic and serialize to plain JSON-compatible
dicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from worldline.core.identity import EntityId, WorldId
from worldline.core.types import Pseudotime


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """Record of a single committed transaction.

    Returned by ``transact`` and handed to every commit observer.

    Attributes:
        world_id: World the transaction committed on.
        pseudotime: Pseudotime produced by the commit.
        created: Entities that had no open revision before this commit.
        revised: Entities whose open revision was superseded.
        deleted: Entities soft-deleted by this commit.
        timestamp: Unix timestamp of the commit (wall clock, informational).
        duration_ms: Time spent inside the world lock.

    Example:
        record = CommitRecord(
            world_id="w1",
            pseudotime=3,
            deleted=("e1",),
            timestamp=1704067200.0,
        )
    """

    world_id: WorldId
    pseudotime: Pseudotime
    created: tuple[EntityId, ...] = ()
    revised: tuple[EntityId, ...] = ()
    deleted: tuple[EntityId, ...] = ()
    timestamp: float = 0.0
    duration_ms: float = 0.0

    @property
    def entity_ids(self) -> tuple[EntityId, ...]:
        """Every entity touched by this commit."""
        return self.created + self.revised + self.deleted

    def is_empty(self) -> bool:
        """Check if this commit only advanced the clock."""
        return not self.entity_ids

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "world_id": self.world_id,
            "pseudotime": self.pseudotime,
            "created": list(self.created),
            "revised": list(self.revised),
            "deleted": list(self.deleted),
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitRecord:
        """Create from dictionary (for deserialization)."""
        return cls(
            world_id=data["world_id"],
            pseudotime=data["pseudotime"],
            created=tuple(data.get("created", ())),
            revised=tuple(data.get("revised", ())),
            deleted=tuple(data.get("deleted", ())),
            timestamp=data.get("timestamp", 0.0),
            duration_ms=data.get("duration_ms", 0.0),
        )
