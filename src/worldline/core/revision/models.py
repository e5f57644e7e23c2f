"""Revision models.

Usage:
    rev = Revision(
        world_id="w1",
        entity_id="e1",
        collection="tasks",
        payload={"content": "buy bread"},
        created_at=1,
    )
    rev.is_open()        # True
    rev.visible_at(1)    # True
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from worldline.core.identity import EntityId, StorageId, WorldId
from worldline.core.types import Payload, Pseudotime


def _freeze(payload: Payload) -> Payload:
    return MappingProxyType(dict(payload))


@dataclass(frozen=True, slots=True)
class Revision:
    """One immutable physical row representing an entity's state over an interval.

    ``valid_before`` is None while the revision is the open head. Once a later
    revision supersedes it, ``valid_before`` holds the last pseudotime at which
    this revision is visible; its successor starts at ``valid_before + 1``.
    """

    world_id: WorldId
    entity_id: EntityId
    collection: str
    payload: Payload
    created_at: Pseudotime
    valid_before: Pseudotime | None = None
    deleted: bool = False
    storage_id: StorageId | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", _freeze(self.payload))

    def is_open(self) -> bool:
        """Check whether this revision is the current head of its entity."""
        return self.valid_before is None

    def visible_at(self, pseudotime: Pseudotime) -> bool:
        """Interval containment: created_at <= pseudotime <= valid_before (or open)."""
        if self.created_at > pseudotime:
            return False
        return self.valid_before is None or self.valid_before >= pseudotime

    def live_at(self, pseudotime: Pseudotime) -> bool:
        """Visible at pseudotime and not a soft-deletion marker."""
        return not self.deleted and self.visible_at(pseudotime)

    def closed(self, at: Pseudotime) -> Revision:
        """Copy of this revision with its interval closed at ``at``."""
        return replace(self, valid_before=at)

    def stored(self, storage_id: StorageId) -> Revision:
        """Copy of this revision carrying its storage-assigned id."""
        return replace(self, storage_id=storage_id)

    def to_dict(self) -> dict[str, Any]:
        """Flat row form, as laid out in the revisions table."""
        return {
            "storage_id": self.storage_id,
            "entity_id": self.entity_id,
            "world_id": self.world_id,
            "collection": self.collection,
            "payload": dict(self.payload),
            "created_at": self.created_at,
            "valid_before": self.valid_before,
            "deleted": self.deleted,
        }
