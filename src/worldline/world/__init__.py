"""Worlds, snapshots and transactions.

Architecture Note:
    world/ is a stateful service layer that coordinates storage, locks and
    caller mutations. Unlike core/ (stateless models and operations), world/
    holds runtime state and orchestrates the transaction model.
"""

from worldline.storage.locks import WorldLocks
from worldline.world.changes import ChangeSet, ProposedChange, normalize_changes
from worldline.world.coordinator import Mutation, TransactionCoordinator
from worldline.world.engine import Engine
from worldline.world.snapshot import Row, Snapshot
from worldline.world.world import World

__all__ = [
    "Engine",
    "World",
    "Snapshot",
    "Row",
    "ProposedChange",
    "ChangeSet",
    "normalize_changes",
    "Mutation",
    "TransactionCoordinator",
    "WorldLocks",
]
