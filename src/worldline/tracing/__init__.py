"""Tracing infrastructure for observing commits and inspecting raw history.

Usage:
    from worldline.tracing import InMemoryCommitLog, audit_world

    log = InMemoryCommitLog(max_records=500)
    engine = Engine(observers=[log])
    ...
    assert audit_world(engine.storage, world_id) == []
"""

from worldline.tracing.audit import audit_world, entity_history, raw_tables
from worldline.tracing.log import InMemoryCommitLog
from worldline.tracing.models import CommitRecord
from worldline.tracing.protocol import CommitObserver

__all__ = [
    "CommitObserver",
    "CommitRecord",
    "InMemoryCommitLog",
    "audit_world",
    "entity_history",
    "raw_tables",
]
