"""Tests for raw-history reporting and interval auditing.

Why these tests exist:
- raw_tables is the only view that bypasses the time filter
- audit_world must flag broken interval chains, not just accept sound ones
"""

from worldline import ProposedChange, Revision
from worldline.tracing import audit_world, entity_history, raw_tables


def test_raw_tables_include_closed_and_deleted(engine, world_id) -> None:
    engine.transact(world_id, lambda snap: [ProposedChange.new("tasks", content="bread")])
    engine.transact(world_id, lambda snap: [snap.first("tasks").delete()])

    tables = raw_tables(engine.storage, world_id)
    assert tables["worlds"] == [{"id": world_id, "pseudotime": 2}]
    rows = tables["revisions"]
    assert [(r["created_at"], r["valid_before"], r["deleted"]) for r in rows] == [
        (1, 1, False),
        (2, None, True),
    ]
    assert all(r["entity_id"] == "e1" for r in rows)


def test_raw_tables_all_worlds(engine) -> None:
    engine.create_world("a")
    engine.create_world("b")
    engine.transact("b", lambda snap: [ProposedChange.new("tasks")])

    tables = raw_tables(engine.storage)
    assert [w["id"] for w in tables["worlds"]] == ["a", "b"]
    assert [r["world_id"] for r in tables["revisions"]] == ["b"]


def test_entity_history_is_oldest_first(engine, world_id) -> None:
    engine.transact(world_id, lambda snap: [ProposedChange.new("tasks", n=0)])
    for n in (1, 2):
        engine.transact(world_id, lambda snap, n=n: [snap.first("tasks").revise(n=n)])

    chain = entity_history(engine.storage, world_id, "e1")
    assert [r.payload["n"] for r in chain] == [0, 1, 2]
    assert entity_history(engine.storage, world_id, "ghost") == []


def test_audit_accepts_sound_world(engine, world_id) -> None:
    engine.transact(world_id, lambda snap: [ProposedChange.new("tasks", content="bread")])
    engine.transact(world_id, lambda snap: [snap.first("tasks").revise(content="rye")])
    assert audit_world(engine.storage, world_id) == []


def test_audit_flags_broken_chain(engine, world_id) -> None:
    engine.transact(world_id, lambda snap: [])
    engine.transact(world_id, lambda snap: [])
    storage = engine.storage
    with storage.atomic():
        storage.insert(Revision(world_id, "x", "tasks", {}, created_at=1, valid_before=1))
        storage.insert(Revision(world_id, "x", "tasks", {}, created_at=2, valid_before=2))

    problems = audit_world(storage, world_id)
    assert "x: expected one open revision, found 0" in problems
    assert "x: latest revision is closed" in problems


def test_audit_flags_gap(engine, world_id) -> None:
    for _ in range(3):
        engine.transact(world_id, lambda snap: [])
    storage = engine.storage
    with storage.atomic():
        storage.insert(Revision(world_id, "x", "tasks", {}, created_at=1, valid_before=1))
        storage.insert(Revision(world_id, "x", "tasks", {}, created_at=3))

    assert audit_world(storage, world_id) == [
        "x: revision [1, 1] not contiguous with successor at 3"
    ]
