"""SQLite-backed operation log and pattern store."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from .errors import MissingStateError, StateError
from .models import (
    Operation,
    OperationType,
    PatternKey,
    PatternType,
    StoreStats,
    TrackedPattern,
    utcnow,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DATABASE_PATH = Path("~/.sortora/sortora.db")
SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    source TEXT NOT NULL,
    destination TEXT,
    rule_name TEXT,
    confidence REAL,
    created_at TEXT NOT NULL,
    undone_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_operations_created_at ON operations(created_at);

CREATE TABLE IF NOT EXISTS patterns (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    pattern TEXT NOT NULL,
    destination TEXT NOT NULL,
    occurrences INTEGER NOT NULL DEFAULT 0,
    confidence REAL NOT NULL DEFAULT 0,
    last_used TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(type, pattern, destination)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def _encode_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _decode_time(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class StateRepository:
    """Persist the append-only operation log and tracked patterns.

    Every mutation runs in its own transaction, so an operation is either
    fully recorded or absent.
    """

    def __init__(self, database_path: Path | None = None) -> None:
        """Open (and if needed create) the database.

        Args:
            database_path: SQLite file location; ``:memory:`` is not supported
                because each call opens a fresh connection.

        Raises:
            StateError: If the database cannot be created or migrated.
        """
        self._path = (database_path or DEFAULT_DATABASE_PATH).expanduser()
        self.initialize()

    @property
    def database_path(self) -> Path:
        """Return the resolved database path."""
        return self._path

    def initialize(self) -> None:
        """Create tables and record the schema version."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StateError(
                f"Unable to create state directory {self._path.parent}: {exc}"
            ) from exc
        with self._transaction() as conn:
            conn.executescript(_SCHEMA)
            row = conn.execute("SELECT version FROM schema_version").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

    # Operations -------------------------------------------------------

    def append_operation(self, operation: Operation) -> Operation:
        """Append ``operation`` to the log and return it with its assigned id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO operations
                    (type, source, destination, rule_name, confidence, created_at, undone_at)
                VALUES (?, ?, ?, ?, ?, ?, NULL)
                """,
                (
                    operation.type.value,
                    operation.source,
                    operation.destination,
                    operation.rule_name,
                    operation.confidence,
                    _encode_time(operation.created_at),
                ),
            )
            operation_id = cursor.lastrowid
        LOGGER.debug(
            "Logged %s operation %s: %s", operation.type.value, operation_id, operation.source
        )
        return operation.model_copy(update={"id": operation_id, "undone_at": None})

    def mark_undone(self, operation_id: int, when: datetime | None = None) -> bool:
        """Flip ``undone_at`` for an active operation.

        Returns:
            bool: ``True`` when the operation was active and is now undone.
        """
        stamp = _encode_time(when or utcnow())
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE operations SET undone_at = ? WHERE id = ? AND undone_at IS NULL",
                (stamp, operation_id),
            )
            return cursor.rowcount == 1

    def get_operation(self, operation_id: int) -> Operation:
        """Return a single operation.

        Raises:
            MissingStateError: If no operation has that id.
        """
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM operations WHERE id = ?", (operation_id,)).fetchone()
        if row is None:
            raise MissingStateError(f"No operation with id {operation_id}")
        return self._row_to_operation(row)

    def query_recent_operations(
        self, limit: int | None = None, *, active_only: bool = False
    ) -> list[Operation]:
        """Return operations newest first.

        Args:
            limit: Maximum number of rows; ``None`` returns all.
            active_only: Restrict to operations that have not been undone.
        """
        query = "SELECT * FROM operations"
        if active_only:
            query += " WHERE undone_at IS NULL"
        query += " ORDER BY id DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_operation(row) for row in rows]

    # Patterns ---------------------------------------------------------

    def upsert_pattern(
        self,
        key: PatternKey,
        delta: int = 1,
        *,
        score: Callable[[int], float],
        when: datetime | None = None,
    ) -> TrackedPattern:
        """Add ``delta`` observations to a pattern, creating it if needed.

        Args:
            key: Pattern identity.
            delta: Number of new observations.
            score: Maps an occurrence count to a confidence; the stored value
                only ever rises.
            when: Observation time, defaulting to now.

        Returns:
            TrackedPattern: The row after the update.
        """
        stamp = _encode_time(when or utcnow())
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM patterns WHERE type = ? AND pattern = ? AND destination = ?",
                (key.type.value, key.pattern, key.destination),
            ).fetchone()
            if row is None:
                occurrences = max(delta, 0)
                confidence = min(max(score(occurrences), 0.0), 1.0)
                conn.execute(
                    """
                    INSERT INTO patterns
                        (type, pattern, destination, occurrences, confidence, last_used, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        key.type.value,
                        key.pattern,
                        key.destination,
                        occurrences,
                        confidence,
                        stamp,
                        stamp,
                    ),
                )
            else:
                occurrences = row["occurrences"] + max(delta, 0)
                confidence = max(row["confidence"], min(score(occurrences), 1.0))
                conn.execute(
                    """
                    UPDATE patterns SET occurrences = ?, confidence = ?, last_used = ?
                    WHERE id = ?
                    """,
                    (occurrences, confidence, stamp, row["id"]),
                )
            updated = conn.execute(
                "SELECT * FROM patterns WHERE type = ? AND pattern = ? AND destination = ?",
                (key.type.value, key.pattern, key.destination),
            ).fetchone()
        LOGGER.debug(
            "Pattern %s '%s' -> %s now at %d occurrences (%.2f)",
            key.type.value,
            key.pattern,
            key.destination,
            occurrences,
            confidence,
        )
        return self._row_to_pattern(updated)

    def query_patterns(self, min_confidence: float = 0.0) -> list[TrackedPattern]:
        """Return patterns at or above ``min_confidence``, most confident first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM patterns WHERE confidence >= ?
                ORDER BY confidence DESC, occurrences DESC, id ASC
                """,
                (min_confidence,),
            ).fetchall()
        return [self._row_to_pattern(row) for row in rows]

    def prune_patterns(self, cutoff: datetime, max_occurrences: int) -> int:
        """Delete patterns last used before ``cutoff`` with few observations.

        Returns:
            int: Number of removed rows.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM patterns WHERE last_used < ? AND occurrences <= ?",
                (_encode_time(cutoff), max_occurrences),
            )
            return cursor.rowcount

    def stats(self, high_confidence: float = 0.7) -> StoreStats:
        """Return aggregate counts for reporting."""
        with self._transaction() as conn:
            by_type = {
                row["type"]: row["total"]
                for row in conn.execute(
                    "SELECT type, COUNT(*) AS total FROM operations GROUP BY type"
                ).fetchall()
            }
            undone = conn.execute(
                "SELECT COUNT(*) FROM operations WHERE undone_at IS NOT NULL"
            ).fetchone()[0]
            patterns = conn.execute("SELECT COUNT(*) FROM patterns").fetchone()[0]
            confident = conn.execute(
                "SELECT COUNT(*) FROM patterns WHERE confidence >= ?", (high_confidence,)
            ).fetchone()[0]
        total = sum(by_type.values())
        return StoreStats(
            total_operations=total,
            active_operations=total - undone,
            undone_operations=undone,
            operations_by_type=by_type,
            total_patterns=patterns,
            high_confidence_patterns=confident,
        )

    # Internal helpers -------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self._path)) as conn:
                conn.row_factory = sqlite3.Row
                with conn:
                    yield conn
        except sqlite3.Error as exc:
            raise StateError(f"State database error at {self._path}: {exc}") from exc

    def _row_to_operation(self, row: sqlite3.Row) -> Operation:
        return Operation(
            id=row["id"],
            type=OperationType(row["type"]),
            source=row["source"],
            destination=row["destination"],
            rule_name=row["rule_name"],
            confidence=row["confidence"],
            created_at=_decode_time(row["created_at"]),
            undone_at=_decode_time(row["undone_at"]),
        )

    def _row_to_pattern(self, row: sqlite3.Row) -> TrackedPattern:
        return TrackedPattern(
            id=row["id"],
            type=PatternType(row["type"]),
            pattern=row["pattern"],
            destination=row["destination"],
            occurrences=row["occurrences"],
            confidence=row["confidence"],
            last_used=_decode_time(row["last_used"]),
            created_at=_decode_time(row["created_at"]),
        )


__all__ = [
    "DEFAULT_DATABASE_PATH",
    "MissingStateError",
    "Operation",
    "OperationType",
    "PatternKey",
    "PatternType",
    "StateError",
    "StateRepository",
    "StoreStats",
    "TrackedPattern",
]
