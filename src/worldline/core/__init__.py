"""Core functionality for worldline.

Architecture Note:
    core/ holds stateless models and pure operations: ids, revisions, filters
    and errors. Stateful services (storage backends, the transaction
    coordinator) live in storage/ and world/.
"""

from worldline.core.errors import (
    DuplicateEntityError,
    DuplicateWorldError,
    NotFoundError,
    StorageError,
    TransactionAbortedError,
    UnknownWorldError,
    WorldlineError,
)
from worldline.core.identity import EntityId, IdGenerator, StorageId, WorldId
from worldline.core.query import Where, normalize_filter
from worldline.core.revision import Revision, interval_violations, visible
from worldline.core.types import Payload, Pseudotime

__all__ = [
    # Types
    "Payload",
    "Pseudotime",
    # Identity
    "EntityId",
    "IdGenerator",
    "StorageId",
    "WorldId",
    # Revisions
    "Revision",
    "visible",
    "interval_violations",
    # Query
    "Where",
    "normalize_filter",
    # Errors
    "WorldlineError",
    "UnknownWorldError",
    "DuplicateWorldError",
    "NotFoundError",
    "DuplicateEntityError",
    "StorageError",
    "TransactionAbortedError",
]
