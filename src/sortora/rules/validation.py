"""Static checks over rule sets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Literal, Optional, Sequence

from .models import AgeSpec, PredicateKind, Rule, parse_size


class RuleIssueKind(str, Enum):
    """Categories of problems detected in a rule set."""

    NON_SPECIFIC = "non_specific"
    OVERLAP = "overlap"
    INVALID_AGE = "invalid_age"
    INVALID_SIZE = "invalid_size"
    DUPLICATE_NAME = "duplicate_name"


@dataclass(frozen=True, slots=True)
class RuleIssue:
    """Problem found while validating a rule.

    Attributes:
        kind: Issue category.
        rule_name: Rule the issue belongs to.
        message: Human-readable explanation.
        severity: ``error`` issues block acceptance; ``warning`` issues are advisory.
        other_rule: Conflicting rule for overlap and duplicate-name issues.
    """

    kind: RuleIssueKind
    rule_name: str
    message: str
    severity: Literal["error", "warning"] = "warning"
    other_rule: Optional[str] = None


def shared_signals(first: Rule, second: Rule) -> tuple[list[str], list[str]]:
    """Return the extensions and filename patterns declared by both rules."""
    ext_a = first.match.extension or []
    ext_b = set(second.match.extension or [])
    names_a = first.match.filename or []
    names_b = {pattern.lower() for pattern in second.match.filename or []}
    extensions = [ext for ext in ext_a if ext in ext_b]
    filenames = [pattern for pattern in names_a if pattern.lower() in names_b]
    return extensions, filenames


def find_overlaps(rule: Rule, existing: Iterable[Rule]) -> list[RuleIssue]:
    """Report enabled rules sharing at least one extension or filename pattern with ``rule``."""
    issues: list[RuleIssue] = []
    for other in existing:
        if not other.enabled or other.name == rule.name:
            continue
        extensions, filenames = shared_signals(rule, other)
        if not extensions and not filenames:
            continue
        shared = [f".{ext}" for ext in extensions] + filenames
        issues.append(
            RuleIssue(
                kind=RuleIssueKind.OVERLAP,
                rule_name=rule.name,
                message=f"Overlaps with rule '{other.name}' on {', '.join(shared)}",
                other_rule=other.name,
            )
        )
    return issues


def validate_rule(rule: Rule) -> list[RuleIssue]:
    """Validate a single rule in isolation."""
    issues: list[RuleIssue] = []
    if not rule.match.is_specific:
        issues.append(
            RuleIssue(
                kind=RuleIssueKind.NON_SPECIFIC,
                rule_name=rule.name,
                message="Rule has no match predicates and applies to every file",
            )
        )

    for predicate in rule.match.predicates():
        if predicate.kind in (PredicateKind.AGE, PredicateKind.ACCESSED):
            if AgeSpec.parse(predicate.value) is None:
                issues.append(
                    RuleIssue(
                        kind=RuleIssueKind.INVALID_AGE,
                        rule_name=rule.name,
                        message=f"Cannot parse {predicate.key} comparison '{predicate.value}'",
                        severity="error",
                    )
                )
        elif predicate.kind in (PredicateKind.MIN_SIZE, PredicateKind.MAX_SIZE):
            if parse_size(predicate.value) is None:
                issues.append(
                    RuleIssue(
                        kind=RuleIssueKind.INVALID_SIZE,
                        rule_name=rule.name,
                        message=f"Cannot parse {predicate.key} value '{predicate.value}'",
                        severity="error",
                    )
                )
    return issues


def validate_rules(rules: Sequence[Rule], *, check_overlap: bool = False) -> list[RuleIssue]:
    """Validate a rule set, returning every issue found.

    Args:
        rules: Rules to validate, in declaration order.
        check_overlap: Also report pairs of enabled rules sharing signals.

    Returns:
        list[RuleIssue]: Issues in rule order.
    """
    issues: list[RuleIssue] = []
    seen: dict[str, int] = {}
    for index, rule in enumerate(rules):
        issues.extend(validate_rule(rule))
        if rule.name in seen:
            issues.append(
                RuleIssue(
                    kind=RuleIssueKind.DUPLICATE_NAME,
                    rule_name=rule.name,
                    message=f"Rule name '{rule.name}' is declared more than once",
                    severity="error",
                    other_rule=rule.name,
                )
            )
        else:
            seen[rule.name] = index
        if check_overlap and rule.enabled:
            issues.extend(find_overlaps(rule, rules[index + 1 :]))
    return issues


__all__ = [
    "RuleIssue",
    "RuleIssueKind",
    "find_overlaps",
    "shared_signals",
    "validate_rule",
    "validate_rules",
]
