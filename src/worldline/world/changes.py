"""Proposed changes and normalization.

Usage:
    # Mutation functions can return various formats:
    return [ProposedChange.new("tasks", content="buy bread")]   # Explicit
    return [row.revise(content="buy whisky")]                   # From a snapshot row
    return [row.delete()]                                       # Soft deletion
    return [{"collection": "tasks", "content": "buy beer"}]     # Mapping shorthand
    return None                                                 # No changes
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from worldline.core.identity import EntityId
from worldline.core.types import Payload

if TYPE_CHECKING:
    from worldline.world.snapshot import Row

RESERVED_FIELDS = frozenset({"entity_id", "collection", "deleted"})
"""Keys that annotate a row and can never be payload fields."""


@dataclass(frozen=True, slots=True)
class ProposedChange:
    """One row change proposed by a mutation function.

    A change without ``entity_id`` creates a new logical entity; the
    coordinator mints its id. A change with ``entity_id`` supersedes that
    entity's current revision.
    """

    collection: str
    payload: Payload = field(default_factory=dict)
    entity_id: EntityId | None = None
    deleted: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.collection, str) or not self.collection:
            raise ValueError(f"Collection must be a non-empty string, got {self.collection!r}")
        reserved = RESERVED_FIELDS.intersection(self.payload)
        if reserved:
            raise ValueError(f"Reserved field(s) in payload: {sorted(reserved)}")
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @classmethod
    def new(cls, collection: str, **fields: Any) -> ProposedChange:
        """Propose a brand-new entity in collection."""
        return cls(collection=collection, payload=fields)

    def is_creation(self) -> bool:
        """Check if this change mints a new entity id."""
        return self.entity_id is None


type ChangeSet = (
    None
    | ProposedChange
    | Row
    | Mapping[str, Any]  # {"collection": ..., "entity_id": ..., "deleted": ..., **payload}
    | Iterable[ProposedChange | Row | Mapping[str, Any]]
)


def change_from_mapping(raw: Mapping[str, Any]) -> ProposedChange:
    """Build a change from a flat row mapping.

    The mapping carries ``collection`` (required), optionally ``entity_id``
    and ``deleted``; every other key is payload. This is the shape returned by
    ``Row.to_dict()``, so ``{**row.to_dict(), "deleted": True}`` is a valid
    soft deletion.

    Raises:
        ValueError: If ``collection`` is missing.
    """
    if "collection" not in raw:
        raise ValueError(f"Row mapping has no 'collection': {dict(raw)!r}")
    payload = {k: v for k, v in raw.items() if k not in RESERVED_FIELDS}
    return ProposedChange(
        collection=raw["collection"],
        payload=payload,
        entity_id=raw.get("entity_id"),
        deleted=bool(raw.get("deleted", False)),
    )


def _normalize_one(item: Any) -> ProposedChange:
    from worldline.world.snapshot import Row

    if isinstance(item, ProposedChange):
        return item
    if isinstance(item, Row):
        return item.revise()
    if isinstance(item, Mapping):
        return change_from_mapping(item)
    raise TypeError(f"Expected ProposedChange, Row or mapping, got {type(item).__name__}")


def normalize_changes(raw: ChangeSet) -> list[ProposedChange]:
    """Convert any valid mutation return value to an ordered list of changes.

    Supports multiple return formats for convenience:
    - None: No changes
    - ProposedChange / Row / Mapping: A single change
    - Iterable of the above: Changes applied in iteration order

    Args:
        raw: Mutation function return value.

    Returns:
        Ordered list of ProposedChange.

    Raises:
        TypeError: If the value or one of its items is not a recognized format.
    """
    from worldline.world.snapshot import Row

    if raw is None:
        return []
    if isinstance(raw, ProposedChange | Row | Mapping):
        return [_normalize_one(raw)]
    if isinstance(raw, str | bytes):
        raise TypeError(f"Invalid mutation return type: {type(raw).__name__}")
    if isinstance(raw, Iterable):
        return [_normalize_one(item) for item in raw]
    raise TypeError(f"Invalid mutation return type: {type(raw).__name__}")
