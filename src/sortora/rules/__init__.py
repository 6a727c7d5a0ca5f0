"""Rule model, parsing, validation, and presets."""

from .models import (
    ActionKind,
    AgeSpec,
    Predicate,
    PredicateKind,
    Rule,
    RuleAction,
    RuleMatch,
    parse_size,
)
from .parser import (
    load_rules_file,
    merge_rules,
    parse_rule,
    parse_rules,
    rule_to_dict,
    serialize_rules,
    sort_rules,
)
from .presets import default_rules
from .validation import RuleIssue, RuleIssueKind, find_overlaps, validate_rule, validate_rules

__all__ = [
    "ActionKind",
    "AgeSpec",
    "Predicate",
    "PredicateKind",
    "Rule",
    "RuleAction",
    "RuleIssue",
    "RuleIssueKind",
    "RuleMatch",
    "default_rules",
    "find_overlaps",
    "load_rules_file",
    "merge_rules",
    "parse_rule",
    "parse_rules",
    "parse_size",
    "rule_to_dict",
    "serialize_rules",
    "sort_rules",
    "validate_rule",
    "validate_rules",
]
