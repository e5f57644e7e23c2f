"""Tests for per-world locking and concurrent transactions.

Critical Invariants:
- Concurrent transactions on one world are serialized: N commits, pseudotime N
- Holding one world's lock never blocks another world
- Readers need no lock
"""

import threading

import pytest

from worldline import Engine, ProposedChange, SequentialAllocator
from worldline.storage.locks import WorldLocks
from worldline.tracing import audit_world


def test_same_world_gets_same_lock():
    locks = WorldLocks()
    assert locks.lock_for("w1") is locks.lock_for("w1")
    assert locks.lock_for("w1") is not locks.lock_for("w2")


def test_hold_tracks_holder_thread():
    locks = WorldLocks()
    with locks.hold("w1"):
        assert locks.is_held("w1")
        assert not locks.is_held("w2")
        seen_elsewhere = []
        thread = threading.Thread(target=lambda: seen_elsewhere.append(locks.is_held("w1")))
        thread.start()
        thread.join()
        assert seen_elsewhere == [False]
        assert locks.holding() == {"w1"}
    assert not locks.is_held("w1")
    assert locks.holding() == frozenset()


def test_reentrant_hold_is_refused():
    locks = WorldLocks()
    with locks.hold("w1"), pytest.raises(RuntimeError, match="already locked"):
        with locks.hold("w1"):
            pass


def test_other_world_not_blocked_while_one_is_held():
    locks = WorldLocks()
    acquired = threading.Event()

    def other():
        with locks.hold("w2"):
            acquired.set()

    with locks.hold("w1"):
        thread = threading.Thread(target=other)
        thread.start()
        assert acquired.wait(timeout=5)
    thread.join()


def test_concurrent_transactions_are_serialized(engine, world_id):
    """CRITICAL: racing writers on one world never lose or double-stamp a tick."""
    engine.transact(world_id, lambda snap: [ProposedChange.new("counters", value=0)])
    workers, per_worker = 4, 10

    def increment(snap):
        counter = snap.first("counters")
        return [counter.revise(value=counter["value"] + 1)]

    def run():
        for _ in range(per_worker):
            engine.transact(world_id, increment)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    total = workers * per_worker
    assert engine.pseudotime(world_id) == total + 1
    assert engine.snapshot(world_id).first("counters")["value"] == total
    assert audit_world(engine.storage, world_id) == []


def test_engines_sharing_storage_share_world_locks(storage):
    """Two engines over one storage serialize on the same world lock."""
    first = Engine(storage=storage, ids=SequentialAllocator(prefix="a"))
    second = Engine(storage=storage, ids=SequentialAllocator(prefix="b"))
    world_id = first.create_world("shared")
    first.transact(world_id, lambda snap: [ProposedChange.new("counters", value=0)])

    def increment(snap):
        counter = snap.first("counters")
        return [counter.revise(value=counter["value"] + 1)]

    def run(engine):
        for _ in range(10):
            engine.transact(world_id, increment)

    threads = [threading.Thread(target=run, args=(e,)) for e in (first, second, first, second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert first.pseudotime(world_id) == 41
    assert second.snapshot(world_id).first("counters")["value"] == 40
    assert audit_world(storage, world_id) == []


def test_transactions_on_different_worlds_proceed_together(engine):
    first = engine.create_world("a")
    second = engine.create_world("b")
    in_first = threading.Event()
    second_done = threading.Event()

    def slow(snap):
        in_first.set()
        assert second_done.wait(timeout=5), "second world blocked by first"
        return [ProposedChange.new("tasks", content="slow")]

    def fast():
        in_first.wait()
        engine.transact(second, lambda snap: [ProposedChange.new("tasks", content="fast")])
        second_done.set()

    thread = threading.Thread(target=fast)
    thread.start()
    engine.transact(first, slow)
    thread.join()

    assert engine.pseudotime(first) == 1
    assert engine.pseudotime(second) == 1


def test_readers_do_not_wait_for_writers(engine, world_id):
    engine.transact(world_id, lambda snap: [ProposedChange.new("tasks", content="bread")])
    in_tx = threading.Event()
    read_done = threading.Event()
    observed = []

    def reader():
        in_tx.wait()
        observed.append([r["content"] for r in engine.query(world_id, 1, "tasks")])
        read_done.set()

    def writer(snap):
        in_tx.set()
        assert read_done.wait(timeout=5), "reader blocked by writer"
        return [snap.first("tasks").revise(content="rye")]

    thread = threading.Thread(target=reader)
    thread.start()
    engine.transact(world_id, writer)
    thread.join()

    assert observed == [["bread"]]
    assert [r["content"] for r in engine.query(world_id, 2, "tasks")] == ["rye"]
