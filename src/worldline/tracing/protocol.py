"""Protocols for tracing infrastructure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from worldline.tracing.models import CommitRecord


@runtime_checkable
class CommitObserver(Protocol):
    """Receives a record of every committed transaction.

    Observers run after the commit is durable and after the world lock is
    released. An exception raised by an observer propagates to the caller of
    ``transact``; it does not undo the commit.

    Usage:
        class Printer:
            def on_commit(self, record: CommitRecord) -> None:
                print(record.world_id, record.pseudotime)

        engine = Engine(observers=[Printer()])
    """

    def on_commit(self, record: CommitRecord) -> None:
        """Handle one commit record."""
        ...
