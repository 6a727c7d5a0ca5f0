"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import SortoraConfig

ENV_PREFIX = "SORTORA__"


def resolve_with_precedence(
    *,
    defaults: SortoraConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> SortoraConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Mappings are merged key by key; lists (such as ``rules``) replace the
    lower-precedence value wholesale.

    Raises:
        ConfigError: If an override is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python", by_alias=True)
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(source, source_name=name))

    try:
        return SortoraConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``SORTORA__SECTION__KEY`` variables into a nested override mapping.

    Values are parsed as YAML scalars so ``true``/``0.8``/``[a, b]`` keep their types.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not path:
            continue
        try:
            value: Any = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        _assign(overrides, path, value, source_name="environment")
    return overrides


def flatten_for_env(config: SortoraConfig) -> Dict[str, str]:
    """Flatten scalar settings into ``SORTORA__SECTION__KEY`` environment mappings."""
    flat: Dict[str, str] = {}

    def _recurse(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _recurse(prefix + [str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[env_key] = "null" if value is None else str(value)

    data = config.model_dump(mode="json", by_alias=True, exclude={"rules"})
    for top_key, child_value in data.items():
        _recurse([str(top_key)], child_value)
    return flat


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        _assign(result, key.split("."), value, source_name=source_name)
    return result


def _assign(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"{source_name.capitalize()} override for {'.'.join(path)} "
                "conflicts with an existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, MappingABC):
        nested = _expand_dotted(value, source_name=source_name)
        current = node.get(leaf)
        node[leaf] = _deep_merge(current if isinstance(current, dict) else {}, nested)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "flatten_for_env", "parse_env_overrides", "resolve_with_precedence"]
