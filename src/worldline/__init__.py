"""worldline: bitemporal versioning over per-world pseudotime.

Usage:
    from worldline import Engine, ProposedChange, Where

    engine = Engine()
    world = engine.world(engine.create_world())

    world.transact(lambda snap: [ProposedChange.new("tasks", content="buy bread")])
    world.transact(lambda snap: [ProposedChange.new("tasks", content="buy beer")])

    def drop_bread(snap):
        bread = snap.first("tasks", Where(content="buy bread"))
        return [bread.delete()]

    world.transact(drop_bread)

    world.query("tasks", pseudotime=2)   # bread and beer
    world.query("tasks")                 # beer only
"""

__version__ = "0.1.0"

# Core primitives
from worldline.core import (
    DuplicateEntityError,
    DuplicateWorldError,
    EntityId,
    NotFoundError,
    Revision,
    StorageError,
    TransactionAbortedError,
    UnknownWorldError,
    Where,
    WorldId,
    WorldlineError,
)

# Storage
from worldline.storage import (
    LocalStorage,
    SequentialAllocator,
    SQLiteStorage,
    Storage,
    UUIDAllocator,
)

# Tracing
from worldline.tracing import (
    CommitObserver,
    CommitRecord,
    InMemoryCommitLog,
)

# Worlds and transactions
from worldline.world import (
    Engine,
    ProposedChange,
    Row,
    Snapshot,
    World,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "EntityId",
    "WorldId",
    "Revision",
    "Where",
    # Errors
    "WorldlineError",
    "UnknownWorldError",
    "DuplicateWorldError",
    "NotFoundError",
    "DuplicateEntityError",
    "StorageError",
    "TransactionAbortedError",
    # World
    "Engine",
    "World",
    "Snapshot",
    "Row",
    "ProposedChange",
    # Storage
    "Storage",
    "LocalStorage",
    "SQLiteStorage",
    "UUIDAllocator",
    "SequentialAllocator",
    # Tracing
    "CommitObserver",
    "CommitRecord",
    "InMemoryCommitLog",
]
