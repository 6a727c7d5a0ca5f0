"""Suggestion generation combining the rule engine and placeholder resolver."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from sortora.rules.models import ActionKind, Rule

from .engine import RuleEngine
from .errors import InvalidDestination, SkipReason, UnknownDestination
from .models import (
    FileMetadata,
    OrganizerContext,
    SkippedFile,
    Suggestion,
    SuggestionBatch,
    SuggestionMode,
    SuggestOptions,
)
from .placeholders import PlaceholderResolver

LOGGER = logging.getLogger(__name__)

PatternConfidence = Callable[[FileMetadata, Path], Optional[float]]

_AUTO_ACTIONS = (ActionKind.MOVE, ActionKind.ARCHIVE, ActionKind.COPY)


class Suggester:
    """Produce per-file suggestions from the context's rule set."""

    def __init__(
        self,
        context: OrganizerContext,
        *,
        engine: RuleEngine | None = None,
        resolver: PlaceholderResolver | None = None,
        pattern_confidence: PatternConfidence | None = None,
    ) -> None:
        """Initialize the suggester.

        Args:
            context: Organizer settings and effective rules.
            engine: Rule engine; built from the context clock when omitted.
            resolver: Placeholder resolver; built from the context destinations when omitted.
            pattern_confidence: Optional lookup of learned confidence for a file moving
                into a directory, used to raise the confidence of learned rules.
        """
        self._context = context
        self._engine = engine or RuleEngine(clock=context.clock)
        self._resolver = resolver or PlaceholderResolver(context.destinations, home=context.home)
        self._pattern_confidence = pattern_confidence

    @property
    def rules(self) -> List[Rule]:
        return self._context.rules

    def generate_suggestions(
        self, files: Iterable[FileMetadata], options: SuggestOptions | None = None
    ) -> List[Suggestion]:
        """Return suggestions for ``files`` ordered by descending confidence.

        Files without a matching rule, already in place, or whose destination
        cannot be resolved are omitted.
        """
        return self.plan(files, options).suggestions

    def plan(
        self, files: Iterable[FileMetadata], options: SuggestOptions | None = None
    ) -> SuggestionBatch:
        """Return suggestions plus the reason every other file was skipped."""
        batch = SuggestionBatch()
        for file in files:
            outcome = self.suggest(file, options)
            if isinstance(outcome, Suggestion):
                batch.suggestions.append(outcome)
            else:
                batch.skipped.append(outcome)
        batch.suggestions.sort(key=lambda item: -item.confidence)
        return batch

    def suggest(
        self, file: FileMetadata, options: SuggestOptions | None = None
    ) -> Union[Suggestion, SkippedFile]:
        """Build the suggestion for one file, or explain why there is none."""
        rule = self._engine.match(file, self.rules)
        if rule is None:
            return SkippedFile(file=file, reason=SkipReason.NO_RULE_MATCHED)
        return self._build(rule, file, options or SuggestOptions())

    def alternatives(
        self, file: FileMetadata, count: int = 3, options: SuggestOptions | None = None
    ) -> List[Suggestion]:
        """Return suggestions from lower-ranked matching rules."""
        results: List[Suggestion] = []
        for rule in self._engine.match_all(file, self.rules)[1:]:
            outcome = self._build(rule, file, options or SuggestOptions())
            if isinstance(outcome, Suggestion):
                results.append(outcome)
            if len(results) >= count:
                break
        return results

    def confidence_for(self, rule: Rule) -> float:
        """Return the baseline confidence of ``rule`` before learned adjustments."""
        action_baseline = self._baseline(rule)
        if rule.confidence is not None:
            return rule.confidence
        if rule.origin == "learned":
            return min(action_baseline, self._context.config.learning.learned_rule_confidence)
        return action_baseline

    def explain(self, suggestion: Suggestion) -> str:
        """Return a one-paragraph human explanation of ``suggestion``."""
        rule = next((item for item in self.rules if item.name == suggestion.rule_name), None)
        parts = [f"Matched rule '{suggestion.rule_name}'"]
        if rule is not None:
            parts[0] += f" (priority {rule.priority})"
            conditions = [
                f"{predicate.key}={predicate.value}" for predicate in rule.match.predicates()
            ]
            if conditions:
                parts.append("conditions: " + ", ".join(conditions))
        if suggestion.is_deletion:
            parts.append("moves the file to the trash")
        else:
            parts.append(f"{suggestion.action.value} to {suggestion.destination}")
        parts.append(f"confidence {suggestion.confidence:.0%}")
        if suggestion.partial:
            parts.append("missing metadata for " + ", ".join(suggestion.unresolved_tokens))
        if suggestion.unknown_tokens:
            parts.append("unknown placeholders " + ", ".join(suggestion.unknown_tokens))
        return "; ".join(parts) + "."

    # Internal helpers -------------------------------------------------

    def _build(
        self, rule: Rule, file: FileMetadata, options: SuggestOptions
    ) -> Union[Suggestion, SkippedFile]:
        confidence = self.confidence_for(rule)
        requires_confirmation = self._requires_confirmation(rule)

        if rule.action.kind is ActionKind.DELETE:
            return Suggestion(
                file=file,
                rule_name=rule.name,
                action=ActionKind.DELETE,
                confidence=confidence,
                mode=SuggestionMode.SUGGEST if requires_confirmation else SuggestionMode.AUTO,
                requires_confirmation=requires_confirmation,
                learned=rule.origin == "learned",
            )

        use_global = options.use_global_destinations
        if use_global is None:
            use_global = self._context.use_global_destinations
        base_dir = options.base_dir
        if not use_global and base_dir is None:
            # Local destinations need a scanned root.
            LOGGER.debug("No base directory for %s; resolving globally", file.path)
            use_global = True
        template = rule.action.template or ""
        if not use_global and rule.local_destination:
            template = rule.local_destination

        try:
            resolved = self._resolver.resolve(
                template, file, base_dir=base_dir, use_global=use_global
            )
        except UnknownDestination as exc:
            LOGGER.warning("Rule '%s' references %s", rule.name, exc)
            return SkippedFile(
                file=file,
                reason=SkipReason.UNKNOWN_DESTINATION,
                rule_name=rule.name,
                detail=str(exc),
            )
        except InvalidDestination as exc:
            LOGGER.warning("Rule '%s': %s", rule.name, exc)
            return SkippedFile(
                file=file,
                reason=SkipReason.INVALID_DESTINATION,
                rule_name=rule.name,
                detail=str(exc),
            )

        directory = resolved.path
        if directory.name == file.filename:
            directory = directory.parent
        if os.path.normpath(directory) == os.path.normpath(file.path.parent):
            return SkippedFile(file=file, reason=SkipReason.ALREADY_ORGANIZED, rule_name=rule.name)

        if rule.origin == "learned" and self._pattern_confidence is not None:
            learned = self._pattern_confidence(file, directory)
            if learned is not None:
                confidence = min(max(confidence, learned), self._baseline(rule))

        auto = (
            rule.action.kind in _AUTO_ACTIONS
            and not requires_confirmation
            and confidence >= self._context.config.organization.auto_threshold
        )
        return Suggestion(
            file=file,
            destination=directory / file.filename,
            rule_name=rule.name,
            action=rule.action.kind,
            confidence=confidence,
            mode=SuggestionMode.AUTO if auto else SuggestionMode.SUGGEST,
            requires_confirmation=requires_confirmation,
            partial=resolved.partial,
            unresolved_tokens=resolved.unresolved_tokens,
            unknown_tokens=resolved.unknown_tokens,
            learned=rule.origin == "learned",
        )

    def _baseline(self, rule: Rule) -> float:
        return self._context.config.confidence.for_action(rule.action.kind.value)

    def _requires_confirmation(self, rule: Rule) -> bool:
        kind = rule.action.kind
        if kind is ActionKind.SUGGEST:
            return True
        if kind is ActionKind.DELETE:
            if self._context.config.organization.confirm_destructive:
                return True
            return rule.action.confirm is not False
        return bool(rule.action.confirm)


def filter_suggestions(
    suggestions: Iterable[Suggestion],
    *,
    min_confidence: float | None = None,
    action: ActionKind | None = None,
    mode: SuggestionMode | None = None,
    rule_name: str | None = None,
) -> List[Suggestion]:
    """Return suggestions satisfying every provided criterion."""
    result: List[Suggestion] = []
    for suggestion in suggestions:
        if min_confidence is not None and suggestion.confidence < min_confidence:
            continue
        if action is not None and suggestion.action is not action:
            continue
        if mode is not None and suggestion.mode is not mode:
            continue
        if rule_name is not None and suggestion.rule_name != rule_name:
            continue
        result.append(suggestion)
    return result


def group_by_destination(
    suggestions: Iterable[Suggestion],
) -> Dict[Optional[Path], List[Suggestion]]:
    """Group suggestions by destination directory; deletions group under ``None``."""
    groups: Dict[Optional[Path], List[Suggestion]] = {}
    for suggestion in suggestions:
        key = suggestion.destination.parent if suggestion.destination else None
        groups.setdefault(key, []).append(suggestion)
    return groups


def group_by_action(suggestions: Iterable[Suggestion]) -> Dict[ActionKind, List[Suggestion]]:
    groups: Dict[ActionKind, List[Suggestion]] = {}
    for suggestion in suggestions:
        groups.setdefault(suggestion.action, []).append(suggestion)
    return groups


__all__ = [
    "PatternConfidence",
    "Suggester",
    "filter_suggestions",
    "group_by_action",
    "group_by_destination",
]
