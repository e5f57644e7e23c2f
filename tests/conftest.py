"""Shared test fixtures."""

import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

from worldline import Engine, LocalStorage, SequentialAllocator, SQLiteStorage


@pytest.fixture(params=["memory", "sqlite"])
def storage(request):
    """Fresh storage backend, once per implementation."""
    if request.param == "memory":
        backend = LocalStorage()
    else:
        backend = SQLiteStorage(":memory:")
    yield backend
    backend.close()


@pytest.fixture
def engine(storage):
    """Engine with predictable entity ids over each backend."""
    return Engine(storage=storage, ids=SequentialAllocator(prefix="e"))


@pytest.fixture
def world_id(engine):
    """Freshly created world at pseudotime 0."""
    return engine.create_world("w1")


@pytest.fixture
def world(engine, world_id):
    """Handle for the fresh world."""
    return engine.world(world_id)
