"""Rule suggester turning learned patterns into candidate rules."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Union

from sortora.config.models import LearningSettings
from sortora.rules.models import Rule, RuleAction, RuleMatch
from sortora.rules.validation import RuleIssue, RuleIssueKind, find_overlaps, validate_rule
from sortora.state import PatternType, TrackedPattern

from .tracker import PatternTracker

LOGGER = logging.getLogger(__name__)

RuleSource = Union[Sequence[Rule], Callable[[], Sequence[Rule]]]


@dataclass
class SuggestedRule:
    """Candidate rule synthesized from tracked patterns; not persisted until accepted.

    Attributes:
        rule: Synthesized rule.
        confidence: Mean confidence of the underlying patterns.
        based_on: Patterns the rule was derived from, most confident first.
        description: Human-readable summary.
    """

    rule: Rule
    confidence: float
    based_on: list[TrackedPattern] = field(default_factory=list)
    description: str = ""


@dataclass
class RuleValidation:
    """Result of validating a suggested rule against the active rule set."""

    valid: bool
    issues: list[RuleIssue] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]


class RuleSuggester:
    """Propose, validate, and merge learned rules."""

    def __init__(
        self,
        tracker: PatternTracker,
        existing_rules: RuleSource = (),
        *,
        settings: LearningSettings | None = None,
        destinations: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> None:
        """Initialize the suggester.

        Args:
            tracker: Source of learned patterns.
            existing_rules: Active rules, or a callable returning them.
            settings: Learning thresholds; defaults to the tracker's settings.
            destinations: Named destinations used to express learned targets as templates.
            home: Home directory used to expand ``~`` in destinations.
        """
        self._tracker = tracker
        self._existing = existing_rules
        self._settings = settings or tracker.settings
        self._destinations = dict(destinations or {})
        self._home = home or Path.home()

    @property
    def existing_rules(self) -> list[Rule]:
        rules = self._existing() if callable(self._existing) else self._existing
        return list(rules)

    def suggest_rules(self, min_confidence: float | None = None) -> list[SuggestedRule]:
        """Return one candidate rule per destination, most confident first."""
        patterns = self._tracker.get_learned_patterns(min_confidence)
        groups: dict[str, list[TrackedPattern]] = {}
        for pattern in patterns:
            groups.setdefault(pattern.destination, []).append(pattern)

        taken = {rule.name for rule in self.existing_rules}
        processed: set[frozenset[tuple[str, str]]] = set()
        suggestions: list[SuggestedRule] = []
        for destination, group in groups.items():
            signature = frozenset((pattern.type.value, pattern.pattern) for pattern in group)
            if signature in processed:
                continue
            processed.add(signature)
            suggestion = self._create_rule(group, destination, taken)
            if suggestion is not None:
                taken.add(suggestion.rule.name)
                suggestions.append(suggestion)

        suggestions.sort(key=lambda item: -item.confidence)
        return suggestions

    def suggest_rule_for_pattern(self, pattern: TrackedPattern) -> Optional[SuggestedRule]:
        """Build a candidate rule from a single pattern."""
        taken = {rule.name for rule in self.existing_rules}
        return self._create_rule([pattern], pattern.destination, taken)

    def validate_suggested_rule(self, suggestion: SuggestedRule) -> RuleValidation:
        """Flag overlaps with enabled rules and reject non-specific rules."""
        issues = find_overlaps(suggestion.rule, self.existing_rules)
        issues.extend(validate_rule(suggestion.rule))
        valid = not any(
            issue.kind is RuleIssueKind.NON_SPECIFIC or issue.severity == "error"
            for issue in issues
        )
        return RuleValidation(valid=valid, issues=issues)

    def merge_with_existing(self, suggestion: SuggestedRule, existing: Rule) -> Rule:
        """Union the suggestion's extensions and filename patterns into ``existing``."""
        match = existing.match.model_copy(deep=True)
        suggested = suggestion.rule.match
        if suggested.extension:
            match.extension = list(dict.fromkeys([*(match.extension or []), *suggested.extension]))
        if suggested.filename:
            match.filename = list(dict.fromkeys([*(match.filename or []), *suggested.filename]))
        return existing.model_copy(update={"match": match})

    def accept(self, suggestion: SuggestedRule) -> Rule:
        """Return the rule ready to be stored in the configuration."""
        return suggestion.rule.model_copy(
            update={"origin": "learned", "priority": self._settings.learned_rule_priority}
        )

    # Internal helpers -------------------------------------------------

    def _create_rule(
        self, patterns: list[TrackedPattern], destination: str, taken: set[str]
    ) -> Optional[SuggestedRule]:
        if not patterns:
            return None
        extensions = [p.pattern.lstrip(".") for p in patterns if p.type is PatternType.EXTENSION]
        filenames = [p.pattern for p in patterns if p.type is PatternType.FILENAME]
        folders = [p.pattern for p in patterns if p.type is PatternType.FOLDER]

        descriptions: list[str] = []
        match = RuleMatch()
        if extensions:
            match.extension = list(dict.fromkeys(extensions))
            descriptions.append(f"files with extensions: {', '.join(match.extension)}")
        if filenames:
            match.filename = list(dict.fromkeys(filenames))
            descriptions.append(f"files matching: {', '.join(match.filename)}")
        if not extensions and not filenames and folders:
            match.location = folders[0]
            descriptions.append(f"files from: {folders[0]}")

        confidence = sum(p.confidence for p in patterns) / len(patterns)
        template = self._as_template(destination)
        name = self._unique_name(self._rule_name(patterns, destination), taken)
        rule = Rule(
            name=name,
            priority=self._settings.learned_rule_priority,
            match=match,
            action=RuleAction(move_to=template),
            origin="learned",
        )
        LOGGER.debug("Synthesized rule '%s' from %d patterns", name, len(patterns))
        return SuggestedRule(
            rule=rule,
            confidence=confidence,
            based_on=list(patterns),
            description=f"Move {' and '.join(descriptions)} to {destination}",
        )

    def _rule_name(self, patterns: list[TrackedPattern], destination: str) -> str:
        filename = next((p for p in patterns if p.type is PatternType.FILENAME), None)
        if filename is not None:
            lowered = filename.pattern.lower()
            if "screenshot" in lowered or "screen shot" in lowered:
                return "Learned: Screenshots"
            if "invoice" in lowered:
                return "Learned: Invoices"
            stripped = filename.pattern.replace("*", "").replace("?", "").strip()
            return f"Learned: {stripped} files"
        extension = next((p for p in patterns if p.type is PatternType.EXTENSION), None)
        if extension is not None:
            return f"Learned: {extension.pattern.lstrip('.').upper()} files"
        return f"Learned: {Path(destination).name or 'files'}"

    def _unique_name(self, name: str, taken: set[str]) -> str:
        candidate = name
        counter = 2
        while candidate in taken:
            candidate = f"{name} ({counter})"
            counter += 1
        return candidate

    def _as_template(self, destination: str) -> str:
        target = Path(os.path.normpath(destination))
        best: Optional[tuple[int, str]] = None
        for name, value in self._destinations.items():
            root = self._expand(value)
            if target == root or root in target.parents:
                depth = len(root.parts)
                if best is None or depth > best[0]:
                    relative = target.relative_to(root).as_posix()
                    suffix = "" if relative == "." else f"/{relative}"
                    best = (depth, f"{{destinations.{name}}}{suffix}")
        return best[1] if best else destination

    def _expand(self, value: str) -> Path:
        if value == "~" or value.startswith("~/"):
            value = str(self._home) + value[1:]
        return Path(os.path.normpath(value))


__all__ = ["RuleSuggester", "RuleValidation", "SuggestedRule"]
