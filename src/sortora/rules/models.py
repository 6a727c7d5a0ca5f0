"""Rule data models describing match predicates and actions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

_AGE_PATTERN = re.compile(r"^\s*(>=|<=|>|<)\s*(\d+)\s*(days?|weeks?|months?|years?)\s*$", re.I)
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb|tb)?\s*$", re.I)
_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
_SIZE_MULTIPLIERS = {
    "b": 1,
    "kb": 1024,
    "mb": 1024**2,
    "gb": 1024**3,
    "tb": 1024**4,
}


class PredicateKind(str, Enum):
    """Known match predicate kinds; ``UNKNOWN`` covers keys this version ignores."""

    EXTENSION = "extension"
    FILENAME = "filename"
    LOCATION = "location"
    AGE = "age"
    ACCESSED = "accessed"
    HAS_EXIF = "has_exif"
    TYPE = "type"
    CATEGORY = "category"
    CONTENT_CONTAINS = "content_contains"
    MIN_SIZE = "min_size"
    MAX_SIZE = "max_size"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Predicate:
    """A single predicate present in a rule's match block.

    Attributes:
        kind: Predicate variant.
        value: Configured predicate value.
        key: Key under which the predicate was declared.
    """

    kind: PredicateKind
    value: Any
    key: str


class ActionKind(str, Enum):
    """Kinds of actions a rule can request."""

    MOVE = "move"
    SUGGEST = "suggest"
    ARCHIVE = "archive"
    COPY = "copy"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class AgeSpec:
    """Parsed age comparison such as ``> 30 days``."""

    operator: str
    days: int

    @classmethod
    def parse(cls, value: str) -> Optional["AgeSpec"]:
        """Return the parsed spec or ``None`` when ``value`` is malformed."""
        match = _AGE_PATTERN.match(value or "")
        if match is None:
            return None
        operator, amount, unit = match.groups()
        unit_key = unit.lower().rstrip("s")
        return cls(operator=operator, days=int(amount) * _UNIT_DAYS[unit_key])

    def holds(self, age_days: float) -> bool:
        """Return whether an age expressed in days satisfies the comparison."""
        if self.operator == ">":
            return age_days > self.days
        if self.operator == ">=":
            return age_days >= self.days
        if self.operator == "<":
            return age_days < self.days
        return age_days <= self.days


def parse_size(value: str) -> Optional[int]:
    """Parse sizes like ``"10 MB"`` into bytes, returning ``None`` when malformed."""
    match = _SIZE_PATTERN.match(value or "")
    if match is None:
        return None
    amount, unit = match.groups()
    return int(float(amount) * _SIZE_MULTIPLIERS[(unit or "b").lower()])


class RuleMatch(BaseModel):
    """Conjunction of optional predicates; absent predicates are wildcards.

    Unknown keys are retained (``extra="allow"``) and surface as
    ``PredicateKind.UNKNOWN`` predicates that evaluation ignores.

    Attributes:
        extension: Accepted extensions, lower-case and without a leading dot.
        filename: Case-insensitive filename globs; any may match.
        location: Glob or prefix applied to the file's parent directory.
        age: Comparison over time since creation, e.g. ``"> 30 days"``.
        accessed: Comparison over time since last access.
        has_exif: Whether the file must (or must not) carry EXIF capture data.
        type: Required file category reported by the analyzer.
        category: Required AI classification category.
        content_contains: Terms searched in extracted text; any may match.
        min_size: Minimum size such as ``"1 MB"``.
        max_size: Maximum size such as ``"2 GB"``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    extension: Optional[List[str]] = None
    filename: Optional[List[str]] = None
    location: Optional[str] = None
    age: Optional[str] = None
    accessed: Optional[str] = None
    has_exif: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("has_exif", "hasExif")
    )
    type: Optional[str] = None
    category: Optional[str] = None
    content_contains: Optional[List[str]] = Field(
        default=None, validation_alias=AliasChoices("content_contains", "contentContains")
    )
    min_size: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("min_size", "minSize")
    )
    max_size: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("max_size", "maxSize")
    )

    @field_validator("extension", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        return [str(item).strip().lower().lstrip(".") for item in value if str(item).strip()]

    @field_validator("filename", "content_contains", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    def predicates(self) -> list[Predicate]:
        """Return every predicate present in this match block, unknown keys last."""
        found: list[Predicate] = []
        for kind in PredicateKind:
            if kind is PredicateKind.UNKNOWN:
                continue
            value = getattr(self, kind.value)
            if value is None or (isinstance(value, list) and not value):
                continue
            found.append(Predicate(kind=kind, value=value, key=kind.value))
        for key, value in (self.model_extra or {}).items():
            found.append(Predicate(kind=PredicateKind.UNKNOWN, value=value, key=key))
        return found

    @property
    def is_specific(self) -> bool:
        """Return whether at least one recognized predicate is present."""
        return any(p.kind is not PredicateKind.UNKNOWN for p in self.predicates())


class RuleAction(BaseModel):
    """Exactly one destination-bearing action or ``delete``.

    Attributes:
        move_to: Destination template for automatic moves.
        suggest_to: Destination template proposed for confirmation.
        archive_to: Destination template for archival moves.
        copy_to: Destination template for copies.
        delete: Whether the file should be soft-deleted to the trash.
        confirm: Forces (or waives) interactive confirmation.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    move_to: Optional[str] = Field(default=None, validation_alias=AliasChoices("move_to", "moveTo"))
    suggest_to: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("suggest_to", "suggestTo")
    )
    archive_to: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("archive_to", "archiveTo")
    )
    copy_to: Optional[str] = Field(default=None, validation_alias=AliasChoices("copy_to", "copyTo"))
    delete: bool = False
    confirm: Optional[bool] = None

    @model_validator(mode="after")
    def _exactly_one_action(self) -> "RuleAction":
        chosen = [
            name
            for name in ("move_to", "suggest_to", "archive_to", "copy_to")
            if getattr(self, name)
        ]
        if self.delete:
            chosen.append("delete")
        if len(chosen) != 1:
            raise ValueError(
                "A rule action requires exactly one of move_to, suggest_to, archive_to, "
                f"copy_to or delete (got {', '.join(chosen) or 'none'})."
            )
        return self

    @property
    def kind(self) -> ActionKind:
        if self.delete:
            return ActionKind.DELETE
        if self.move_to:
            return ActionKind.MOVE
        if self.suggest_to:
            return ActionKind.SUGGEST
        if self.archive_to:
            return ActionKind.ARCHIVE
        return ActionKind.COPY

    @property
    def template(self) -> Optional[str]:
        """Return the destination template, or ``None`` for deletions."""
        return self.move_to or self.suggest_to or self.archive_to or self.copy_to


class Rule(BaseModel):
    """Declarative match + action pair governing file placement.

    Attributes:
        name: Unique, human-readable rule name.
        priority: Evaluation priority; higher values are evaluated first.
        enabled: Whether the rule participates in matching.
        match: Predicates that must all hold.
        action: Action applied to matching files.
        confidence: Optional override of the action's baseline confidence.
        origin: Where the rule came from (user config, presets, or learning).
        local_destination: Template used instead of the action template in local mode.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    priority: int = 50
    enabled: bool = True
    match: RuleMatch = Field(default_factory=RuleMatch)
    action: RuleAction
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    origin: Literal["user", "preset", "learned"] = "user"
    local_destination: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("local_destination", "localDestination")
    )


__all__ = [
    "ActionKind",
    "AgeSpec",
    "Predicate",
    "PredicateKind",
    "Rule",
    "RuleAction",
    "RuleMatch",
    "parse_size",
]
