"""Configuration management for Sortora."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import DEFAULT_DESTINATIONS, SortoraConfig
from .resolver import ENV_PREFIX, flatten_for_env, parse_env_overrides, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.sortora/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Sortora configuration file
    # Generated automatically; manage it with `sortora config set` or edit it by hand.
    # Environment variables named SORTORA__SECTION__KEY override values stored here.
    """
)


class ConfigManager:
    """Load and persist configuration data, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
    ) -> SortoraConfig:
        """Load configuration data from disk, applying precedence rules.

        Args:
            cli_overrides: Dotted-key overrides supplied on the command line.
            include_env: Whether ``SORTORA__`` environment variables participate.
            ensure_file: Create the file with defaults when it does not exist.

        Returns:
            SortoraConfig: Validated configuration.

        Raises:
            ConfigError: If any source is malformed.
        """
        if ensure_file:
            self.ensure_exists()

        env_data = parse_env_overrides(self._env) if include_env else None
        return resolve_with_precedence(
            defaults=SortoraConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_data or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: SortoraConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        self._write_file(self._coerce_to_dict(config))

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        path = self._config_path
        if not path.exists():
            self._write_file(self._coerce_to_dict(SortoraConfig()))
        return path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _coerce_to_dict(self, value: SortoraConfig | Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(value, SortoraConfig):
            return dict(value)
        from sortora.rules.parser import rule_to_dict

        data = value.model_dump(mode="json", by_alias=True, exclude={"rules"})
        data["rules"] = [rule_to_dict(rule) for rule in value.rules]
        return data

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Unable to read configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            _CONFIG_HEADER + f"# Last updated: {stamp}\n" + serialized, encoding="utf-8"
        )


__all__ = [
    "ConfigManager",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_DESTINATIONS",
    "ENV_PREFIX",
    "SortoraConfig",
    "flatten_for_env",
    "parse_env_overrides",
    "resolve_with_precedence",
]
