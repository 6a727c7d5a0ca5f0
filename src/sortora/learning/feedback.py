"""Feedback bookkeeping for suggestions shown to a person."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from sortora.organization.models import Suggestion
from sortora.state import Operation

from .tracker import PatternTracker


class FeedbackType(str, Enum):
    """How a person responded to a suggestion."""

    ACCEPT = "accept"
    REJECT = "reject"
    MODIFY = "modify"
    SKIP = "skip"


@dataclass
class Feedback:
    suggestion: Suggestion
    type: FeedbackType
    modified_destination: Optional[Path] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class FeedbackStats:
    """Session-level acceptance statistics.

    Attributes:
        total: Number of feedback entries.
        accepted: Accepted suggestions.
        rejected: Rejected suggestions.
        modified: Suggestions redirected to another destination.
        skipped: Suggestions left undecided.
        acceptance_rate: ``(accepted + modified) / (accepted + rejected + modified)``.
        rule_accuracy: Fraction of accepted feedback per rule.
    """

    total: int = 0
    accepted: int = 0
    rejected: int = 0
    modified: int = 0
    skipped: int = 0
    acceptance_rate: float = 0.0
    rule_accuracy: dict[str, float] = field(default_factory=dict)


@dataclass
class ProblematicRule:
    rule_name: str
    accuracy: float
    feedback: list[Feedback]


class FeedbackHandler:
    """Record feedback and feed accepted or corrected moves to the tracker."""

    def __init__(self, tracker: PatternTracker) -> None:
        self._tracker = tracker
        self._session: list[Feedback] = []

    @property
    def session(self) -> list[Feedback]:
        return list(self._session)

    def record(
        self,
        suggestion: Suggestion,
        feedback_type: FeedbackType,
        *,
        operation: Operation | None = None,
        modified_destination: Path | None = None,
    ) -> Feedback:
        """Record a response and learn from it.

        Args:
            suggestion: Suggestion the person responded to.
            feedback_type: Kind of response.
            operation: Operation committed as a result, when one exists.
            modified_destination: Destination chosen instead, for ``MODIFY``.
        """
        entry = Feedback(
            suggestion=suggestion,
            type=feedback_type,
            modified_destination=modified_destination,
        )
        self._session.append(entry)

        if feedback_type is FeedbackType.ACCEPT:
            if operation is not None:
                self._tracker.observe(operation)
            elif suggestion.destination is not None and suggestion.confidence < 1.0:
                self._tracker.record_move(suggestion.file.path, suggestion.destination)
        elif feedback_type is FeedbackType.MODIFY and modified_destination is not None:
            self._tracker.record_move(suggestion.file.path, modified_destination)
        return entry

    def session_stats(self) -> FeedbackStats:
        stats = FeedbackStats(total=len(self._session))
        per_rule: dict[str, list[int]] = {}
        for entry in self._session:
            if entry.type is FeedbackType.ACCEPT:
                stats.accepted += 1
            elif entry.type is FeedbackType.REJECT:
                stats.rejected += 1
            elif entry.type is FeedbackType.MODIFY:
                stats.modified += 1
            else:
                stats.skipped += 1
            counts = per_rule.setdefault(entry.suggestion.rule_name, [0, 0])
            counts[1] += 1
            if entry.type is FeedbackType.ACCEPT:
                counts[0] += 1

        actionable = stats.accepted + stats.rejected + stats.modified
        if actionable:
            stats.acceptance_rate = (stats.accepted + stats.modified) / actionable
        stats.rule_accuracy = {
            name: accepted / total for name, (accepted, total) in per_rule.items() if total
        }
        return stats

    def should_ask_for_feedback(self, suggestion: Suggestion) -> bool:
        """Return whether a person should confirm ``suggestion``."""
        if suggestion.confidence < 0.7:
            return True
        accuracy = self.session_stats().rule_accuracy.get(suggestion.rule_name)
        if accuracy is not None and accuracy < 0.5:
            return True
        similar = [
            entry
            for entry in self._session
            if entry.suggestion.file.category == suggestion.file.category
        ]
        return len(similar) < 2

    def suggestion_quality(self, suggestion: Suggestion) -> Literal["high", "medium", "low"]:
        accuracy = self.session_stats().rule_accuracy.get(suggestion.rule_name)
        if suggestion.confidence >= 0.9 and (accuracy is None or accuracy >= 0.8):
            return "high"
        if suggestion.confidence >= 0.7 and (accuracy is None or accuracy >= 0.5):
            return "medium"
        return "low"

    def problematic_rules(self) -> list[ProblematicRule]:
        """Return rules accepted less than half the time, worst first."""
        problems = [
            ProblematicRule(
                rule_name=name,
                accuracy=accuracy,
                feedback=[e for e in self._session if e.suggestion.rule_name == name],
            )
            for name, accuracy in self.session_stats().rule_accuracy.items()
            if accuracy < 0.5
        ]
        return sorted(problems, key=lambda item: item.accuracy)

    def rule_improvements(self) -> list[str]:
        """Return advice for rules that are often rejected or redirected."""
        advice: list[str] = []
        for problem in self.problematic_rules():
            rejections = sum(1 for e in problem.feedback if e.type is FeedbackType.REJECT)
            redirects = Counter(
                str(e.modified_destination)
                for e in problem.feedback
                if e.type is FeedbackType.MODIFY and e.modified_destination is not None
            )
            if rejections > sum(redirects.values()):
                advice.append(
                    f"Rule '{problem.rule_name}' has {problem.accuracy:.0%} accuracy. "
                    "Consider making its match conditions more specific."
                )
            elif redirects:
                destination, _ = redirects.most_common(1)[0]
                advice.append(
                    f"Rule '{problem.rule_name}' is often redirected to '{destination}'. "
                    "Consider updating its destination."
                )
        return advice

    def clear(self) -> None:
        self._session.clear()


__all__ = [
    "Feedback",
    "FeedbackHandler",
    "FeedbackStats",
    "FeedbackType",
    "ProblematicRule",
]
