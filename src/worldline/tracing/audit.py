"""Reporting and invariant auditing over raw revisions.

Everything here reads through ``scan``, bypassing the time filter, to look at
history as it is physically stored.

Usage:
    tables = raw_tables(storage, world_id)      # worlds + revisions, as dicts
    chain = entity_history(storage, world_id, entity_id)
    problems = audit_world(storage, world_id)   # [] when intervals are sound
"""

from __future__ import annotations

from typing import Any

from worldline.core.identity import EntityId, WorldId
from worldline.core.revision import Revision, group_by_entity, interval_violations
from worldline.storage.protocol import Storage


def entity_history(storage: Storage, world_id: WorldId, entity_id: EntityId) -> list[Revision]:
    """Every stored revision of one entity, oldest first.

    Args:
        storage: Backend to read.
        world_id: World the entity lives in.
        entity_id: Entity to trace.

    Returns:
        Revisions sorted by created_at. Empty if the entity never existed.
    """
    chain = list(storage.scan(world_id, lambda r: r.entity_id == entity_id))
    chain.sort(key=lambda r: (r.created_at, r.storage_id or 0))
    return chain


def audit_world(storage: Storage, world_id: WorldId) -> list[str]:
    """Check the interval partition of every entity in a world.

    Returns:
        Problem descriptions; empty when every entity has exactly one open
        head and contiguous, non-overlapping intervals.
    """
    current = storage.current(world_id)
    chains = group_by_entity(storage.scan(world_id, lambda r: True))
    problems: list[str] = []
    for chain in chains.values():
        problems.extend(interval_violations(chain, current))
    return problems


def raw_tables(storage: Storage, world_id: WorldId | None = None) -> dict[str, list[dict[str, Any]]]:
    """Dump the worlds and revisions tables as flat dicts.

    Args:
        storage: Backend to read.
        world_id: Restrict to one world (default all).

    Returns:
        ``{"worlds": [...], "revisions": [...]}`` in storage order.
    """
    world_ids = [world_id] if world_id is not None else list(storage.worlds())
    worlds = [{"id": w, "pseudotime": storage.current(w)} for w in world_ids]
    revisions = [r.to_dict() for w in world_ids for r in storage.scan(w, lambda r: True)]
    return {"worlds": worlds, "revisions": revisions}
