"""SQLite storage implementation.

Durable single-file backend. Two tables, worlds and revisions; the payload
is stored as canonical JSON. Versioning invariants are enforced by the
engine, not by table constraints.

Usage:
    storage = SQLiteStorage("worldline.db")
    engine = Engine(storage=storage)
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from worldline.core.errors import (
    DuplicateEntityError,
    DuplicateWorldError,
    StorageError,
    UnknownWorldError,
)
from worldline.core.identity import EntityId, WorldId
from worldline.core.revision import Revision
from worldline.core.types import Pseudotime
from worldline.storage.locks import WorldLocks

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS worlds (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    pseudotime INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS revisions (
    storage_id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_id TEXT NOT NULL,
    world_id TEXT NOT NULL REFERENCES worlds(id),
    collection TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    valid_before INTEGER,
    deleted INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_revisions_world ON revisions(world_id, collection);
CREATE INDEX IF NOT EXISTS idx_revisions_entity ON revisions(world_id, entity_id, valid_before);
"""

_COLUMNS = "storage_id, entity_id, world_id, collection, payload, created_at, valid_before, deleted"


def canonical_json(payload: Any) -> str:
    """Deterministic JSON encoding for stored payloads."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _row_to_revision(row: sqlite3.Row) -> Revision:
    return Revision(
        world_id=str(row["world_id"]),
        entity_id=str(row["entity_id"]),
        collection=str(row["collection"]),
        payload=json.loads(row["payload"]),
        created_at=int(row["created_at"]),
        valid_before=None if row["valid_before"] is None else int(row["valid_before"]),
        deleted=bool(row["deleted"]),
        storage_id=int(row["storage_id"]),
    )


class SQLiteStorage:
    """SQLite backend implementing ClockStore, RevisionStore and atomic().

    Every thread gets its own connection to a WAL-mode database file, so
    readers never wait for writers and only see committed rows.

    An atomic() scope opens no SQLite transaction by itself. The first write
    inside it issues ``BEGIN IMMEDIATE``, and the scope's exit commits or
    rolls back. Reads that precede the first write, such as a mutation
    reading its snapshot, therefore hold no database lock, and transactions
    on other worlds proceed meanwhile. SQLite admits one writer at a time, so
    the write phases of concurrent transactions still queue behind each
    other for up to ``timeout`` seconds.

    Writers in other processes sharing the file are not covered by
    ``locks``; the coordinator's clock check aborts a transaction whose world
    advanced underneath it.

    Args:
        path: Database file. ":memory:" gives a private database in a
            temporary file that close() deletes.
        timeout: Seconds to wait on a locked database file.
    """

    def __init__(self, path: str | Path = ":memory:", timeout: float = 5.0):
        self._temp_dir: str | None = None
        if str(path) == ":memory:":
            self._temp_dir = tempfile.mkdtemp(prefix="worldline-")
            path = Path(self._temp_dir) / "worldline.db"
        self._path = str(path)
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        self._timeout = timeout
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._guard = threading.Lock()
        self._locks = WorldLocks()
        self._closed = False
        self._init_schema()

    @property
    def locks(self) -> WorldLocks:
        """Per-world lock registry for writers of this storage."""
        return self._locks

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self._path,
                timeout=self._timeout,
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._path}: {e}") from e
        with self._guard:
            self._connections.append(conn)
        return conn

    def _connection(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageError(f"Storage at {self._path} is closed")
        conn: sqlite3.Connection | None = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._connect()
            self._local.conn = conn
        return conn

    def _init_schema(self) -> None:
        conn = self._connection()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize {self._path}: {e}") from e
        logger.debug("SQLite schema ready at %s", self._path)

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._connection().execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def _require_world(self, world_id: WorldId) -> None:
        row = self._execute("SELECT 1 FROM worlds WHERE id = ?", (world_id,)).fetchone()
        if row is None:
            raise UnknownWorldError(world_id)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Commit the scope's writes on success, roll them back on exception.

        Nested scopes join the outermost one. A failed COMMIT is rolled back
        too, leaving the connection ready for the next scope.
        """
        state = self._local
        if getattr(state, "depth", 0):
            state.depth += 1
            try:
                yield
            finally:
                state.depth -= 1
            return

        state.depth = 1
        state.writing = False
        try:
            yield
            if state.writing:
                self._execute("COMMIT")
        except BaseException:
            if state.writing:
                self._rollback()
            raise
        finally:
            state.depth = 0
            state.writing = False

    @contextmanager
    def _writing(self) -> Iterator[sqlite3.Connection]:
        # Joins the caller's scope, or wraps a lone write in its own.
        with self.atomic():
            if not self._local.writing:
                self._execute("BEGIN IMMEDIATE")
                self._local.writing = True
            yield self._connection()

    def _rollback(self) -> None:
        conn = self._connection()
        if not conn.in_transaction:
            logger.debug("SQLite already rolled back on %s", self._path)
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.warning("ROLLBACK failed on %s", self._path, exc_info=True)
        else:
            logger.debug("Rolled back SQLite transaction")

    # Clock store

    def create_world(self, world_id: WorldId) -> None:
        """Insert a world row at pseudotime 0.

        Raises:
            DuplicateWorldError: If world_id already exists.
        """
        with self._writing() as conn:
            try:
                conn.execute("INSERT INTO worlds (id, pseudotime) VALUES (?, 0)", (world_id,))
            except sqlite3.IntegrityError as e:
                raise DuplicateWorldError(f"World {world_id!r} already exists") from e
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def worlds(self) -> Iterator[WorldId]:
        """Iterate known world ids in creation order."""
        rows = self._execute("SELECT id FROM worlds ORDER BY seq").fetchall()
        return iter([str(r["id"]) for r in rows])

    def current(self, world_id: WorldId) -> Pseudotime:
        """Read a world's current pseudotime.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        row = self._execute("SELECT pseudotime FROM worlds WHERE id = ?", (world_id,)).fetchone()
        if row is None:
            raise UnknownWorldError(world_id)
        return int(row["pseudotime"])

    def advance(self, world_id: WorldId) -> Pseudotime:
        """Increment a world's pseudotime and return the new value.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        with self._writing():
            cursor = self._execute(
                "UPDATE worlds SET pseudotime = pseudotime + 1 WHERE id = ?", (world_id,)
            )
            if cursor.rowcount == 0:
                raise UnknownWorldError(world_id)
            return self.current(world_id)

    # Revision store

    def insert(self, revision: Revision) -> Revision:
        """Append a revision row.

        Returns:
            The stored revision with its storage id.

        Raises:
            UnknownWorldError: If the revision's world does not exist.
            DuplicateEntityError: If the entity already has an open head, or the
                storage id is taken.
            StorageError: If the payload is not JSON-serializable or SQLite fails.
        """
        try:
            payload = canonical_json(dict(revision.payload))
        except (TypeError, ValueError) as e:
            raise StorageError(f"Payload of {revision.entity_id!r} not serializable: {e}") from e

        with self._writing() as conn:
            self._require_world(revision.world_id)
            if revision.is_open() and self.open_revision(revision.world_id, revision.entity_id):
                raise DuplicateEntityError(
                    f"Entity {revision.entity_id!r} already has an open revision "
                    f"in world {revision.world_id!r}"
                )
            try:
                cursor = conn.execute(
                    f"INSERT INTO revisions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        revision.storage_id,
                        revision.entity_id,
                        revision.world_id,
                        revision.collection,
                        payload,
                        revision.created_at,
                        revision.valid_before,
                        int(revision.deleted),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEntityError(str(e)) from e
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

            if cursor.lastrowid is None:
                raise StorageError(f"No storage id assigned to {revision.entity_id!r}")
            return revision.stored(cursor.lastrowid)

    def close_open_revision(
        self, world_id: WorldId, entity_id: EntityId, at: Pseudotime
    ) -> Revision | None:
        """Close an entity's open head at pseudotime ``at``.

        Returns:
            The closed revision, or None if the entity has no open head.
        """
        with self._writing():
            head = self.open_revision(world_id, entity_id)
            if head is None:
                return None
            self._execute(
                "UPDATE revisions SET valid_before = ? WHERE storage_id = ?",
                (at, head.storage_id),
            )
        return head.closed(at)

    def open_revision(self, world_id: WorldId, entity_id: EntityId) -> Revision | None:
        """Get an entity's open head, or None."""
        row = self._execute(
            f"SELECT {_COLUMNS} FROM revisions "
            "WHERE world_id = ? AND entity_id = ? AND valid_before IS NULL",
            (world_id, entity_id),
        ).fetchone()
        return None if row is None else _row_to_revision(row)

    def revisions(self, world_id: WorldId, collection: str | None = None) -> Iterator[Revision]:
        """Iterate a world's rows in insertion order.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        self._require_world(world_id)
        if collection is None:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM revisions WHERE world_id = ? ORDER BY storage_id",
                (world_id,),
            ).fetchall()
        else:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM revisions "
                "WHERE world_id = ? AND collection = ? ORDER BY storage_id",
                (world_id, collection),
            ).fetchall()
        return iter([_row_to_revision(r) for r in rows])

    def scan(
        self, world_id: WorldId, predicate: Callable[[Revision], bool]
    ) -> Iterator[Revision]:
        """Lazily yield a world's rows matching predicate, regardless of time.

        Raises:
            UnknownWorldError: If world_id does not exist.
        """
        return (r for r in self.revisions(world_id) if predicate(r))

    def close(self) -> None:
        """Close every thread's connection and drop a temporary database."""
        with self._guard:
            self._closed = True
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self._temp_dir = None
