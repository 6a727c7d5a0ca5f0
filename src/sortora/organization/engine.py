"""Rule engine selecting the first matching rule for a file."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from sortora.rules.models import AgeSpec, Predicate, PredicateKind, Rule, parse_size

from .models import FileMetadata

LOGGER = logging.getLogger(__name__)

_WILDCARDS = ("*", "?")


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a ``*``/``?`` glob into a case-insensitive full-match regex."""
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE | re.DOTALL)


def glob_matches(pattern: str, value: str) -> bool:
    return glob_to_regex(pattern).match(value) is not None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _age_in_days(now: datetime, then: Optional[datetime]) -> Optional[float]:
    if then is None:
        return None
    return (_as_utc(now) - _as_utc(then)).total_seconds() / 86_400


class RuleEngine:
    """Evaluate rules against file metadata.

    Rules are consulted in the order given; callers pass them sorted by
    descending priority (see :func:`sortora.rules.parser.sort_rules`). The
    first enabled rule whose predicates all hold wins, so a broad rule with a
    higher priority shadows narrower rules below it.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def match(self, file: FileMetadata, rules: Sequence[Rule]) -> Optional[Rule]:
        """Return the first enabled rule whose predicates all hold, or ``None``."""
        now = self._clock()
        for rule in rules:
            if rule.enabled and self._matches(rule, file, now):
                LOGGER.debug("Rule '%s' matched %s", rule.name, file.path)
                return rule
        LOGGER.debug("No rule matched %s", file.path)
        return None

    def match_all(self, file: FileMetadata, rules: Iterable[Rule]) -> list[Rule]:
        """Return every enabled matching rule, preserving rule order."""
        now = self._clock()
        return [rule for rule in rules if rule.enabled and self._matches(rule, file, now)]

    def evaluate(self, rule: Rule, file: FileMetadata) -> bool:
        """Return whether ``rule``'s predicates all hold, ignoring ``enabled``."""
        return self._matches(rule, file, self._clock())

    def _matches(self, rule: Rule, file: FileMetadata, now: datetime) -> bool:
        return all(self._holds(predicate, file, now) for predicate in rule.match.predicates())

    def _holds(self, predicate: Predicate, file: FileMetadata, now: datetime) -> bool:
        kind = predicate.kind
        value = predicate.value
        if kind is PredicateKind.EXTENSION:
            return file.extension.lower().lstrip(".") in value
        if kind is PredicateKind.FILENAME:
            return any(glob_matches(pattern, file.filename) for pattern in value)
        if kind is PredicateKind.LOCATION:
            return self._location_matches(str(value), file.path.parent)
        if kind is PredicateKind.AGE:
            return self._age_matches(value, _age_in_days(now, file.reference_time))
        if kind is PredicateKind.ACCESSED:
            return self._age_matches(value, _age_in_days(now, file.accessed_at))
        if kind is PredicateKind.HAS_EXIF:
            return file.has_exif == bool(value)
        if kind is PredicateKind.TYPE:
            return (file.category or "").lower() == str(value).lower()
        if kind is PredicateKind.CATEGORY:
            return file.ai is not None and file.ai.category.lower() == str(value).lower()
        if kind is PredicateKind.CONTENT_CONTAINS:
            text = (file.text_content or "").lower()
            return bool(text) and any(str(term).lower() in text for term in value)
        if kind is PredicateKind.MIN_SIZE:
            limit = parse_size(value)
            return limit is not None and file.size >= limit
        if kind is PredicateKind.MAX_SIZE:
            limit = parse_size(value)
            return limit is not None and file.size <= limit
        return True

    def _age_matches(self, spec_text: str, age_days: Optional[float]) -> bool:
        spec = AgeSpec.parse(spec_text)
        if spec is None or age_days is None:
            return False
        return spec.holds(age_days)

    def _location_matches(self, pattern: str, parent: Path) -> bool:
        expanded = os.path.expanduser(pattern).rstrip("/\\") or os.sep
        current = str(parent)
        if any(token in expanded for token in _WILDCARDS):
            return glob_matches(expanded, current)
        if current == expanded:
            return True
        return current.startswith(expanded.rstrip(os.sep) + os.sep)


__all__ = ["RuleEngine", "glob_matches", "glob_to_regex"]
