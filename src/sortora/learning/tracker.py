"""Pattern tracker accumulating (signal -> destination) statistics."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from sortora.config.models import LearningSettings
from sortora.organization.engine import glob_matches
from sortora.organization.models import FileMetadata
from sortora.state import (
    Operation,
    OperationType,
    PatternKey,
    PatternType,
    StateRepository,
    TrackedPattern,
)

LOGGER = logging.getLogger(__name__)

Signal = tuple[PatternType, str]

_FILENAME_FAMILIES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^screenshot", re.I), "Screenshot*"),
    (re.compile(r"^screen shot", re.I), "Screen Shot*"),
    (re.compile(r"^capture", re.I), "Capture*"),
    (re.compile(r"^img_", re.I), "IMG_*"),
    (re.compile(r"^dsc", re.I), "DSC*"),
    (re.compile(r"^pxl_", re.I), "PXL_*"),
    (re.compile(r"invoice", re.I), "*invoice*"),
    (re.compile(r"receipt", re.I), "*receipt*"),
    (re.compile(r"report", re.I), "*report*"),
]
_PREFIX = re.compile(r"^([A-Za-z]+)[_-]")


def filename_family(filename: str) -> Optional[str]:
    """Return the glob family a filename belongs to, if any.

    >>> filename_family("Screenshot 2024-01-01.png")
    'Screenshot*'
    >>> filename_family("scan_0001.pdf")
    'scan*'
    """
    for pattern, family in _FILENAME_FAMILIES:
        if pattern.search(filename):
            return family
    prefix = _PREFIX.match(filename)
    if prefix:
        return f"{prefix.group(1)}*"
    return None


def infer_signals(path: Path) -> list[Signal]:
    """Decompose a source path into extension, filename-family, and folder signals."""
    signals: list[Signal] = []
    extension = path.suffix.lower().lstrip(".")
    if extension:
        signals.append((PatternType.EXTENSION, extension))
    family = filename_family(path.name)
    if family:
        signals.append((PatternType.FILENAME, family))
    signals.append((PatternType.FOLDER, str(path.parent)))
    return signals


@dataclass
class PatternStats:
    """Summary of tracked patterns."""

    total_patterns: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    top_destinations: list[tuple[str, int]] = field(default_factory=list)


class PatternTracker:
    """Observe committed operations and expose learned patterns.

    Confidence after ``n`` observations is ``1 - (1 - growth_rate) ** n``:
    strictly increasing, saturating below 1.0, and stored so it never falls.
    """

    def __init__(
        self,
        repository: StateRepository,
        settings: LearningSettings | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or LearningSettings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def settings(self) -> LearningSettings:
        return self._settings

    def confidence_for_occurrences(self, occurrences: int) -> float:
        if occurrences <= 0:
            return 0.0
        return 1.0 - (1.0 - self._settings.growth_rate) ** occurrences

    def observe(
        self, operation: Operation, signals: Sequence[Signal] | None = None
    ) -> list[TrackedPattern]:
        """Record an accepted operation.

        Operations that are deletions, already undone, lack a destination, or
        were applied by a rule already at full confidence are ignored.

        Args:
            operation: Committed operation.
            signals: Signals to record; inferred from the source path when omitted.

        Returns:
            list[TrackedPattern]: Updated patterns, empty when ignored.
        """
        if not self._settings.enabled:
            return []
        if operation.type is OperationType.DELETE or not operation.is_active:
            return []
        if operation.destination is None:
            return []
        if operation.confidence is not None and operation.confidence >= 1.0:
            return []
        return self.record_move(Path(operation.source), Path(operation.destination), signals)

    def record_move(
        self,
        source: Path,
        destination: Path,
        signals: Sequence[Signal] | None = None,
    ) -> list[TrackedPattern]:
        """Record that a file at ``source`` was placed at ``destination``."""
        directory = str(destination.parent)
        now = self._clock()
        updated = []
        for pattern_type, pattern in signals or infer_signals(source):
            updated.append(
                self._repository.upsert_pattern(
                    PatternKey(pattern_type, pattern, directory),
                    1,
                    score=self.confidence_for_occurrences,
                    when=now,
                )
            )
        return updated

    def get_learned_patterns(self, min_confidence: float | None = None) -> list[TrackedPattern]:
        """Return patterns meeting the confidence and occurrence thresholds."""
        threshold = self._settings.min_confidence if min_confidence is None else min_confidence
        return [
            pattern
            for pattern in self._repository.query_patterns(threshold)
            if pattern.occurrences >= self._settings.min_occurrences
        ]

    def matching_patterns(
        self, file: FileMetadata, patterns: Iterable[TrackedPattern] | None = None
    ) -> list[TrackedPattern]:
        """Return tracked patterns whose signal applies to ``file``."""
        candidates = self._repository.query_patterns(0.0) if patterns is None else patterns
        extension = file.extension.lower().lstrip(".")
        folder = str(file.path.parent)
        matches = []
        for pattern in candidates:
            if pattern.type is PatternType.EXTENSION:
                applies = pattern.pattern == extension
            elif pattern.type is PatternType.FILENAME:
                applies = glob_matches(pattern.pattern, file.filename)
            else:
                applies = pattern.pattern == folder
            if applies:
                matches.append(pattern)
        return matches

    def suggest_destination(self, file: FileMetadata) -> Optional[TrackedPattern]:
        """Return the strongest learned pattern for ``file``.

        Extension patterns are preferred, then filename families, then folders.
        """
        matches = self.matching_patterns(file, self.get_learned_patterns())
        for pattern_type in (PatternType.EXTENSION, PatternType.FILENAME, PatternType.FOLDER):
            for pattern in matches:
                if pattern.type is pattern_type:
                    return pattern
        return None

    def confidence_for(self, file: FileMetadata, directory: Path) -> Optional[float]:
        """Return the best tracked confidence for ``file`` moving into ``directory``."""
        target = str(directory)
        scores = [
            pattern.confidence
            for pattern in self.matching_patterns(file)
            if pattern.destination == target
        ]
        return max(scores) if scores else None

    def stats(self) -> PatternStats:
        patterns = self._repository.query_patterns(0.0)
        by_type = Counter(pattern.type.value for pattern in patterns)
        destinations = Counter(pattern.destination for pattern in patterns)
        return PatternStats(
            total_patterns=len(patterns),
            by_type=dict(by_type),
            top_destinations=destinations.most_common(10),
        )

    def prune(self, max_age_days: int | None = None, max_occurrences: int = 4) -> int:
        """Delete patterns unused for ``max_age_days`` with few observations."""
        days = self._settings.prune_after_days if max_age_days is None else max_age_days
        cutoff = self._clock() - timedelta(days=days)
        removed = self._repository.prune_patterns(cutoff, max_occurrences)
        if removed:
            LOGGER.info("Pruned %d stale patterns", removed)
        return removed


__all__ = ["PatternStats", "PatternTracker", "Signal", "filename_family", "infer_signals"]
