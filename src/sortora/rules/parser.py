"""Loading, serializing, and merging rule definitions."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import yaml
from pydantic import ValidationError

from sortora.config.exceptions import ConfigError

from .models import Rule


def parse_rule(data: Mapping[str, Any]) -> Rule:
    """Validate a raw mapping into a :class:`Rule`.

    Args:
        data: Mapping using either snake_case or camelCase keys.

    Returns:
        Rule: Validated rule.

    Raises:
        ConfigError: If the mapping is not a valid rule.
    """
    if not isinstance(data, MappingABC):
        raise ConfigError(f"Rule definitions must be mappings, got {type(data).__name__}.")
    try:
        return Rule.model_validate(dict(data))
    except ValidationError as exc:
        name = data.get("name", "<unnamed>")
        raise ConfigError(f"Invalid rule '{name}': {exc}") from exc


def parse_rules(items: Iterable[Mapping[str, Any]]) -> list[Rule]:
    """Validate every mapping in ``items`` in order."""
    return [parse_rule(item) for item in items]


def load_rules_file(path: Path) -> list[Rule]:
    """Load rules from a YAML file.

    The file may contain a bare list of rules or a mapping with a top-level
    ``rules`` key.

    Raises:
        ConfigError: If the file is missing, unreadable, or malformed.
    """
    path = path.expanduser()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read rules file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse rules file {path}: {exc}") from exc

    if raw is None:
        return []
    if isinstance(raw, MappingABC):
        raw = raw.get("rules") or []
    if not isinstance(raw, list):
        raise ConfigError(f"Rules file {path} must contain a list of rules.")
    return parse_rules(raw)


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    """Return a compact mapping for ``rule`` with unset fields removed."""
    data = rule.model_dump(mode="json", exclude_none=True, exclude={"match", "action"})
    data["match"] = rule.match.model_dump(mode="json", exclude_none=True)
    data["action"] = rule.action.model_dump(mode="json", exclude_none=True, exclude_defaults=True)
    return data


def serialize_rules(rules: Iterable[Rule]) -> str:
    """Render rules as a YAML document with a top-level ``rules`` key."""
    payload = {"rules": [rule_to_dict(rule) for rule in rules]}
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


def sort_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Order rules by descending priority, keeping declaration order for ties."""
    return sorted(rules, key=lambda rule: -rule.priority)


def merge_rules(base: Sequence[Rule], overrides: Sequence[Rule]) -> list[Rule]:
    """Overlay ``overrides`` onto ``base`` by rule name and re-sort by priority.

    Overriding rules replace base rules of the same name in place; new names
    are appended before sorting.
    """
    merged: dict[str, Rule] = {rule.name: rule for rule in base}
    for rule in overrides:
        merged[rule.name] = rule
    return sort_rules(merged.values())


__all__ = [
    "load_rules_file",
    "merge_rules",
    "parse_rule",
    "parse_rules",
    "rule_to_dict",
    "serialize_rules",
    "sort_rules",
]
