"""Organization data models: file metadata, suggestions, and the organizer context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from sortora.config.models import SortoraConfig
from sortora.rules.models import ActionKind, Rule
from sortora.rules.parser import sort_rules
from sortora.rules.presets import default_rules

from .errors import SkipReason


class ExifMetadata(BaseModel):
    """Image capture metadata.

    Attributes:
        captured_at: Original capture timestamp.
        camera_make: Camera manufacturer.
        camera_model: Camera model name.
    """

    captured_at: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None


class AudioMetadata(BaseModel):
    """Audio tag metadata.

    Attributes:
        artist: Track artist.
        album: Album title.
        title: Track title.
        year: Release year.
    """

    artist: Optional[str] = None
    album: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None


class AIClassification(BaseModel):
    """Category assigned by an external classifier."""

    category: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class FileDescriptor(BaseModel):
    """File facts reported by the scanner.

    Attributes:
        path: Absolute path to the file.
        filename: Base name including the extension.
        extension: Lower-case extension without the leading dot.
        size: Size in bytes.
        created_at: Creation (or inode change) time.
        modified_at: Last modification time.
        accessed_at: Last access time.
        content_hash: Optional content digest.
    """

    path: Path
    filename: str
    extension: str = ""
    size: int = 0
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    accessed_at: Optional[datetime] = None
    content_hash: Optional[str] = None


class FileMetadata(FileDescriptor):
    """Descriptor enriched by the analyzer.

    Attributes:
        category: Broad file type such as ``image`` or ``document``.
        mime_type: Detected MIME type.
        exif: Image capture metadata when present.
        audio: Audio tag metadata when present.
        text_content: Extracted text used by ``content_contains`` predicates.
        ai: Optional classifier output.
    """

    category: Optional[str] = None
    mime_type: Optional[str] = None
    exif: Optional[ExifMetadata] = None
    audio: Optional[AudioMetadata] = None
    text_content: Optional[str] = None
    ai: Optional[AIClassification] = None

    @property
    def has_exif(self) -> bool:
        return self.exif is not None and self.exif.captured_at is not None

    @property
    def reference_time(self) -> Optional[datetime]:
        """Return the creation time, falling back to the modification time."""
        return self.created_at or self.modified_at


class SuggestionMode(str, Enum):
    """How a suggestion should be applied."""

    AUTO = "auto"
    SUGGEST = "suggest"


class Suggestion(BaseModel):
    """Proposed destination (or deletion) for one file.

    Attributes:
        file: Metadata of the file the suggestion applies to.
        destination: Resolved absolute destination, ``None`` for deletions.
        rule_name: Rule that produced the suggestion.
        action: Action kind requested by the rule.
        confidence: Trust in the suggestion, between 0 and 1.
        mode: Whether the suggestion may run unattended.
        requires_confirmation: Whether a person must approve before execution.
        partial: Whether some placeholder tokens resolved to empty segments.
        unresolved_tokens: Tokens that could not be resolved.
        unknown_tokens: Unrecognized tokens left verbatim in the destination.
        learned: Whether the rule came from the learning loop.
    """

    file: FileMetadata
    destination: Optional[Path] = None
    rule_name: str
    action: ActionKind
    confidence: float = Field(ge=0.0, le=1.0)
    mode: SuggestionMode = SuggestionMode.SUGGEST
    requires_confirmation: bool = True
    partial: bool = False
    unresolved_tokens: List[str] = Field(default_factory=list)
    unknown_tokens: List[str] = Field(default_factory=list)
    learned: bool = False

    @property
    def is_deletion(self) -> bool:
        return self.action is ActionKind.DELETE


class SkippedFile(BaseModel):
    """A file that produced no suggestion, with the reason."""

    file: FileMetadata
    reason: SkipReason
    rule_name: Optional[str] = None
    detail: Optional[str] = None


class SuggestionBatch(BaseModel):
    """Suggestions and skips produced for one set of files."""

    suggestions: List[Suggestion] = Field(default_factory=list)
    skipped: List[SkippedFile] = Field(default_factory=list)

    def skip_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self.skipped:
            counts[entry.reason.value] = counts.get(entry.reason.value, 0) + 1
        return counts


class SuggestOptions(BaseModel):
    """Per-run options for suggestion generation.

    Attributes:
        base_dir: Root used for local-mode destinations.
        use_global_destinations: Overrides the configured global/local mode when set.
    """

    base_dir: Optional[Path] = None
    use_global_destinations: Optional[bool] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrganizerContext:
    """Explicit settings threaded through the suggester, executor, and learner.

    Attributes:
        config: Loaded configuration.
        rules: Effective rule set ordered by descending priority.
        destinations: Named destination table.
        home: Directory anchoring global destinations.
        trash_dir: Trash override; ``None`` uses the platform trash.
        clock: Source of the current time for age predicates.
    """

    config: SortoraConfig
    rules: List[Rule] = field(default_factory=list)
    destinations: Dict[str, str] = field(default_factory=dict)
    home: Path = field(default_factory=Path.home)
    trash_dir: Optional[Path] = None
    clock: Callable[[], datetime] = _utcnow

    @classmethod
    def from_config(
        cls,
        config: SortoraConfig,
        *,
        home: Path | None = None,
        extra_rules: List[Rule] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "OrganizerContext":
        """Build a context whose rule set is user rules followed by presets.

        Args:
            config: Loaded configuration.
            home: Home directory override used for global destinations.
            extra_rules: Additional rules (for example from a rules file).
            clock: Time source override.
        """
        rules = list(config.rules) + list(extra_rules or [])
        if config.organization.use_default_rules:
            names = {rule.name for rule in rules}
            rules.extend(rule for rule in default_rules() if rule.name not in names)
        trash = Path(config.storage.trash_dir).expanduser() if config.storage.trash_dir else None
        return cls(
            config=config,
            rules=sort_rules(rules),
            destinations=dict(config.destinations),
            home=home or Path.home(),
            trash_dir=trash,
            clock=clock or _utcnow,
        )

    @property
    def use_global_destinations(self) -> bool:
        return self.config.organization.use_global_destinations


__all__ = [
    "AIClassification",
    "AudioMetadata",
    "ExifMetadata",
    "FileDescriptor",
    "FileMetadata",
    "OrganizerContext",
    "SkippedFile",
    "Suggestion",
    "SuggestionBatch",
    "SuggestionMode",
    "SuggestOptions",
]
