"""Configuration models describing Sortora settings."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sortora.rules.models import Rule

DEFAULT_DESTINATIONS: Dict[str, str] = {
    "photos": "~/Pictures/Sorted",
    "screenshots": "~/Pictures/Screenshots",
    "documents": "~/Documents/Sorted",
    "work": "~/Documents/Work",
    "finance": "~/Documents/Finance",
    "code": "~/Projects",
    "music": "~/Music/Sorted",
    "video": "~/Videos/Sorted",
    "archives": "~/Archives",
}


class SortoraBaseModel(BaseModel):
    """Shared configuration for Sortora Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class OrganizationOptions(SortoraBaseModel):
    """Settings that govern suggestion and execution policy.

    Attributes:
        mode: ``suggest`` asks before every change; ``auto`` applies trusted suggestions.
        confirm_destructive: Whether deletions always require confirmation.
        auto_threshold: Minimum confidence for a suggestion to run unattended.
        use_global_destinations: Resolve destinations under the home directory.
        use_default_rules: Append the built-in presets to the user's rules.
        overwrite: Replace existing files at the destination instead of renaming.
    """

    mode: Literal["suggest", "auto"] = "suggest"
    confirm_destructive: bool = True
    auto_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    use_global_destinations: bool = False
    use_default_rules: bool = True
    overwrite: bool = False


class ConfidenceSettings(SortoraBaseModel):
    """Baseline confidence per action kind.

    Attributes:
        move: Confidence for ``move_to`` rules.
        suggest: Confidence for ``suggest_to`` rules.
        archive: Confidence for ``archive_to`` rules.
        copy_: Confidence for ``copy_to`` rules, spelled ``copy`` in files.
        delete: Confidence for ``delete`` rules.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    move: float = Field(default=1.0, ge=0.0, le=1.0)
    suggest: float = Field(default=0.6, ge=0.0, le=1.0)
    archive: float = Field(default=0.5, ge=0.0, le=1.0)
    copy_: float = Field(default=0.8, ge=0.0, le=1.0, alias="copy")
    delete: float = Field(default=1.0, ge=0.0, le=1.0)

    def for_action(self, action: str) -> float:
        """Return the baseline for an action kind value such as ``"copy"``."""
        return float(self.model_dump(by_alias=True)[action])


class LearningSettings(SortoraBaseModel):
    """Pattern tracking and rule-learning options.

    Attributes:
        enabled: Whether executed operations feed the pattern tracker.
        min_confidence: Confidence a pattern needs before it is proposed as a rule.
        min_occurrences: Observations a pattern needs before it is proposed.
        growth_rate: Fraction of the remaining gap to 1.0 closed by each observation.
        learned_rule_confidence: Starting confidence of accepted learned rules.
        learned_rule_priority: Priority assigned to accepted learned rules.
        prune_after_days: Age after which rarely seen patterns are dropped.
    """

    enabled: bool = True
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    min_occurrences: int = Field(default=2, ge=1)
    growth_rate: float = Field(default=0.5, gt=0.0, lt=1.0)
    learned_rule_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    learned_rule_priority: int = 60
    prune_after_days: int = Field(default=90, ge=1)


class StorageSettings(SortoraBaseModel):
    """Locations of persistent state.

    Attributes:
        database_path: SQLite database holding the operation log and patterns.
        trash_dir: Optional override for the platform trash directory.
    """

    database_path: str = "~/.sortora/sortora.db"
    trash_dir: Optional[str] = None


class LoggingSettings(SortoraBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Log file path; ``None`` disables file logging.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = "~/.sortora/sortora.log"
    max_size_mb: int = 10
    backup_count: int = 5

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level: {value}")
        return normalized


class CLIOptions(SortoraBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
        history_limit: Default number of operations shown by ``sortora history``.
    """

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = 20


class SortoraConfig(SortoraBaseModel):
    """Top-level configuration struct for Sortora.

    Attributes:
        organization: Suggestion and execution policy.
        confidence: Per-action confidence baselines.
        learning: Pattern tracking and rule learning.
        storage: Persistent state locations.
        logging: Logging configuration.
        cli: CLI presentation defaults.
        destinations: Named destination table referenced by ``{destinations.<name>}``.
        rules: User rule definitions.
    """

    organization: OrganizationOptions = Field(default_factory=OrganizationOptions)
    confidence: ConfidenceSettings = Field(default_factory=ConfidenceSettings)
    learning: LearningSettings = Field(default_factory=LearningSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)
    destinations: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DESTINATIONS))
    rules: List[Rule] = Field(default_factory=list)


__all__ = [
    "DEFAULT_DESTINATIONS",
    "SortoraBaseModel",
    "OrganizationOptions",
    "ConfidenceSettings",
    "LearningSettings",
    "StorageSettings",
    "LoggingSettings",
    "CLIOptions",
    "SortoraConfig",
]
