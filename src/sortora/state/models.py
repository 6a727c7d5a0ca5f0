"""State data models for the operation log and learned patterns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperationType(str, Enum):
    """Filesystem actions recorded in the operation log."""

    MOVE = "move"
    COPY = "copy"
    DELETE = "delete"


class Operation(BaseModel):
    """Append-only record of a committed filesystem change.

    An operation is *active* while ``undone_at`` is ``None``.
    """

    id: Optional[int] = None
    type: OperationType
    source: str
    destination: Optional[str] = None
    rule_name: Optional[str] = None
    confidence: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)
    undone_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.undone_at is None


class PatternType(str, Enum):
    """Signal families tracked by the learner."""

    EXTENSION = "extension"
    FILENAME = "filename"
    FOLDER = "folder"


@dataclass(frozen=True, slots=True)
class PatternKey:
    """Identity of a tracked pattern."""

    type: PatternType
    pattern: str
    destination: str


class TrackedPattern(BaseModel):
    """Frequency statistics for one ``(type, pattern, destination)`` choice."""

    id: Optional[int] = None
    type: PatternType
    pattern: str
    destination: str
    occurrences: int = 0
    confidence: float = 0.0
    last_used: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def key(self) -> PatternKey:
        return PatternKey(self.type, self.pattern, self.destination)


class StoreStats(BaseModel):
    """Aggregate counts across the operation log and pattern store."""

    total_operations: int = 0
    active_operations: int = 0
    undone_operations: int = 0
    operations_by_type: Dict[str, int] = Field(default_factory=dict)
    total_patterns: int = 0
    high_confidence_patterns: int = 0


__all__ = [
    "Operation",
    "OperationType",
    "PatternKey",
    "PatternType",
    "StoreStats",
    "TrackedPattern",
    "utcnow",
]
