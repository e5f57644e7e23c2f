"""Revision operations: visibility filtering and interval checks."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator

from worldline.core.identity import EntityId
from worldline.core.revision.models import Revision
from worldline.core.types import Pseudotime


def visible(revisions: Iterable[Revision], pseudotime: Pseudotime) -> Iterator[Revision]:
    """Yield live revisions (visible and not deleted) at pseudotime.

    Args:
        revisions: Candidate revisions, typically one world's rows in insertion order.
        pseudotime: Pseudotime to pin the view to.

    Yields:
        Revisions whose interval contains pseudotime and that are not deleted.
    """
    for revision in revisions:
        if revision.live_at(pseudotime):
            yield revision


def group_by_entity(revisions: Iterable[Revision]) -> dict[EntityId, list[Revision]]:
    """Group revisions per entity, each chain sorted by created_at."""
    chains: dict[EntityId, list[Revision]] = defaultdict(list)
    for revision in revisions:
        chains[revision.entity_id].append(revision)
    for chain in chains.values():
        chain.sort(key=lambda r: (r.created_at, r.storage_id or 0))
    return dict(chains)


def interval_violations(chain: list[Revision], current: Pseudotime) -> list[str]:
    """Check one entity's revision chain for partition problems.

    A healthy chain has exactly one open revision (the last), each closed
    revision ends right before its successor starts, and nothing starts
    after the world's current pseudotime.

    Args:
        chain: Revisions of one entity in one world, sorted by created_at.
        current: The world's current pseudotime.

    Returns:
        Human-readable problem descriptions. Empty when the chain is sound.
    """
    problems: list[str] = []
    if not chain:
        return problems

    entity = chain[0].entity_id
    open_count = sum(1 for r in chain if r.is_open())
    if open_count != 1:
        problems.append(f"{entity}: expected one open revision, found {open_count}")
    if not chain[-1].is_open():
        problems.append(f"{entity}: latest revision is closed")

    for earlier, later in zip(chain, chain[1:], strict=False):
        if earlier.valid_before is None:
            problems.append(f"{entity}: open revision at {earlier.created_at} has a successor")
        elif earlier.valid_before + 1 != later.created_at:
            problems.append(
                f"{entity}: revision [{earlier.created_at}, {earlier.valid_before}] "
                f"not contiguous with successor at {later.created_at}"
            )

    for revision in chain:
        if revision.created_at > current:
            problems.append(f"{entity}: revision created at {revision.created_at} > {current}")
        if revision.valid_before is not None and revision.valid_before < revision.created_at:
            problems.append(f"{entity}: empty interval at {revision.created_at}")
    return problems
