"""Contract tests every storage backend must pass.

Critical Invariants:
- Pseudotime starts at 0 and advance() returns the new value
- At most one open revision per (world, entity)
- close_open_revision is a no-op without an open head
- atomic() is all-or-nothing
"""

import pytest

from worldline.core.errors import DuplicateEntityError, DuplicateWorldError, UnknownWorldError
from worldline.core.revision import Revision
from worldline.storage.protocol import ClockStore, RevisionStore, Storage


def rev(entity="e1", created_at=1, world="w1", collection="tasks", **payload):
    return Revision(
        world_id=world,
        entity_id=entity,
        collection=collection,
        payload=payload or {"content": entity},
        created_at=created_at,
    )


@pytest.fixture
def store(storage):
    storage.create_world("w1")
    return storage


def test_backend_satisfies_protocols(storage):
    assert isinstance(storage, Storage)
    assert isinstance(storage, ClockStore)
    assert isinstance(storage, RevisionStore)


# Clock store


def test_new_world_starts_at_zero(store):
    assert store.current("w1") == 0


def test_advance_increments_and_returns(store):
    assert store.advance("w1") == 1
    assert store.advance("w1") == 2
    assert store.current("w1") == 2


def test_worlds_are_independent(store):
    store.create_world("w2")
    store.advance("w1")
    assert store.current("w2") == 0
    assert list(store.worlds()) == ["w1", "w2"]


def test_duplicate_world_rejected(store):
    with pytest.raises(DuplicateWorldError):
        store.create_world("w1")


@pytest.mark.parametrize("operation", ["current", "advance"])
def test_unknown_world_on_clock(store, operation):
    with pytest.raises(UnknownWorldError):
        getattr(store, operation)("nope")


# Revision store


def test_insert_assigns_increasing_storage_ids(store):
    first = store.insert(rev("e1"))
    second = store.insert(rev("e2"))
    assert first.storage_id is not None
    assert second.storage_id is not None
    assert second.storage_id > first.storage_id


def test_insert_into_unknown_world(store):
    with pytest.raises(UnknownWorldError):
        store.insert(rev(world="nope"))


def test_second_open_head_rejected(store):
    store.insert(rev("e1"))
    with pytest.raises(DuplicateEntityError):
        store.insert(rev("e1", created_at=2))


def test_same_entity_id_in_other_world_is_independent(store):
    store.create_world("w2")
    store.insert(rev("e1"))
    store.insert(rev("e1", world="w2"))
    assert store.open_revision("w2", "e1") is not None


def test_reused_storage_id_rejected(store):
    stored = store.insert(rev("e1"))
    duplicate = rev("e2").stored(stored.storage_id)
    with pytest.raises(DuplicateEntityError):
        store.insert(duplicate)


def test_close_open_revision_sets_valid_before(store):
    store.insert(rev("e1"))
    closed = store.close_open_revision("w1", "e1", at=3)
    assert closed is not None
    assert closed.valid_before == 3
    assert store.open_revision("w1", "e1") is None
    [row] = list(store.revisions("w1"))
    assert row.valid_before == 3


def test_close_without_open_head_is_noop(store):
    assert store.close_open_revision("w1", "never", at=0) is None


def test_close_only_touches_its_world(store):
    store.create_world("w2")
    store.insert(rev("e1"))
    store.insert(rev("e1", world="w2"))
    store.close_open_revision("w1", "e1", at=1)
    assert store.open_revision("w2", "e1") is not None


def test_revisions_in_insertion_order_and_by_collection(store):
    store.insert(rev("e1", collection="tasks"))
    store.insert(rev("e2", collection="notes"))
    store.insert(rev("e3", collection="tasks"))
    assert [r.entity_id for r in store.revisions("w1")] == ["e1", "e2", "e3"]
    assert [r.entity_id for r in store.revisions("w1", "tasks")] == ["e1", "e3"]


def test_revisions_of_unknown_world(store):
    with pytest.raises(UnknownWorldError):
        store.revisions("nope")


def test_scan_ignores_time(store):
    store.insert(rev("e1"))
    store.close_open_revision("w1", "e1", at=1)
    store.insert(rev("e1", created_at=2, content="later"))
    found = list(store.scan("w1", lambda r: r.entity_id == "e1"))
    assert [r.created_at for r in found] == [1, 2]


def test_payload_round_trips(store):
    payload = {"content": "buy bread", "done": False, "tags": ["food"], "qty": 2, "note": None}
    store.insert(Revision("w1", "e1", "tasks", payload, created_at=1))
    [row] = list(store.revisions("w1"))
    assert dict(row.payload) == payload


# Atomic boundary


def test_atomic_commits_on_success(store):
    with store.atomic():
        store.insert(rev("e1"))
        store.advance("w1")
    assert store.current("w1") == 1
    assert store.open_revision("w1", "e1") is not None


def test_atomic_rolls_back_everything_on_error(store):
    """CRITICAL: a failure mid-transaction leaves no partial effect."""
    store.insert(rev("e1"))

    with pytest.raises(RuntimeError, match="boom"), store.atomic():
        store.close_open_revision("w1", "e1", at=0)
        store.insert(rev("e1", created_at=1, content="new"))
        store.insert(rev("e2"))
        store.advance("w1")
        raise RuntimeError("boom")

    assert store.current("w1") == 0
    head = store.open_revision("w1", "e1")
    assert head is not None
    assert head.payload["content"] == "e1"
    assert [r.entity_id for r in store.revisions("w1")] == ["e1"]


def test_nested_atomic_joins_outer(store):
    with pytest.raises(RuntimeError), store.atomic():
        with store.atomic():
            store.advance("w1")
        raise RuntimeError("outer fails")
    assert store.current("w1") == 0


def test_store_usable_after_rollback(store):
    with pytest.raises(RuntimeError), store.atomic():
        store.insert(rev("e1"))
        raise RuntimeError
    stored = store.insert(rev("e1"))
    assert stored.is_open()
