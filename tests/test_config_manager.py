"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from sortora.config import (
    ConfigError,
    ConfigManager,
    SortoraConfig,
    flatten_for_env,
    parse_env_overrides,
    resolve_with_precedence,
)
from sortora.rules import ActionKind


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, **kwargs) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(**kwargs)


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch, env={})

    path = manager.ensure_exists()

    assert path == tmp_path / ".sortora" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "Sortora configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, SortoraConfig)
    assert config.organization.mode == "suggest"
    assert config.destinations["screenshots"] == "~/Pictures/Screenshots"


def test_load_respects_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env = {
        "SORTORA__ORGANIZATION__AUTO_THRESHOLD": "0.8",
        "SORTORA__LEARNING__ENABLED": "false",
        "UNRELATED": "ignored",
    }
    manager = _fresh_manager(tmp_path, monkeypatch, env=env)
    manager.ensure_exists()
    manager.save({"organization": {"mode": "auto", "auto_threshold": 0.95}})

    config = manager.load(cli_overrides={"organization.auto_threshold": 0.7})

    assert config.organization.mode == "auto"
    assert config.learning.enabled is False
    # CLI overrides take precedence over environment
    assert config.organization.auto_threshold == pytest.approx(0.7)

    without_cli = manager.load()
    assert without_cli.organization.auto_threshold == pytest.approx(0.8)

    file_only = manager.load(include_env=False)
    assert file_only.organization.auto_threshold == pytest.approx(0.95)
    assert file_only.learning.enabled is True


def test_rules_round_trip_through_config_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch, env={})
    manager.save(
        {
            "rules": [
                {
                    "name": "Invoices",
                    "priority": 80,
                    "match": {"extension": [".PDF"], "filename": "*invoice*"},
                    "action": {"moveTo": "{destinations.finance}/Invoices/"},
                }
            ]
        }
    )

    config = manager.load()
    manager.save(config)
    reloaded = manager.load()

    assert len(reloaded.rules) == 1
    rule = reloaded.rules[0]
    assert rule.match.extension == ["pdf"]
    assert rule.match.filename == ["*invoice*"]
    assert rule.action.kind is ActionKind.MOVE
    assert rule.action.template == "{destinations.finance}/Invoices/"


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch, env={})
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch, env={})
    manager.save({"organization": {"mood": "cheerful"}})

    with pytest.raises(ConfigError):
        manager.load()


def test_parse_env_overrides_reads_yaml_scalars() -> None:
    overrides = parse_env_overrides(
        {
            "SORTORA__STORAGE__TRASH_DIR": "/tmp/trash",
            "SORTORA__CLI__HISTORY_LIMIT": "5",
            "SORTORA__ORGANIZATION__USE_DEFAULT_RULES": "no",
            "HOME": "/home/someone",
        }
    )

    assert overrides == {
        "storage": {"trash_dir": "/tmp/trash"},
        "cli": {"history_limit": 5},
        "organization": {"use_default_rules": False},
    }


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(SortoraConfig())

    assert flat["SORTORA__ORGANIZATION__MODE"] == "suggest"
    assert flat["SORTORA__LEARNING__MIN_OCCURRENCES"] == "2"
    assert flat["SORTORA__STORAGE__TRASH_DIR"] == "null"
    assert not any(key.startswith("SORTORA__RULES") for key in flat)

    config = resolve_with_precedence(
        defaults=SortoraConfig(), env_overrides=parse_env_overrides(flat)
    )
    assert config == SortoraConfig()


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=SortoraConfig(),
            file_overrides={"organization": {"auto_threshold": "not-a-number"}},
        )


def test_invalid_logging_level_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=SortoraConfig(), cli_overrides={"logging.level": "chatty"}
        )


def test_copy_confidence_uses_the_action_name(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure the copy baseline is read and written under the ``copy`` key.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest monkeypatch fixture.
    """
    manager = _fresh_manager(tmp_path, monkeypatch, env={"SORTORA__CONFIDENCE__MOVE": "0.9"})
    manager.save({"confidence": {"copy": 0.65}})

    config = manager.load()

    assert config.confidence.copy_ == pytest.approx(0.65)
    assert config.confidence.for_action("copy") == pytest.approx(0.65)
    assert config.confidence.for_action(ActionKind.MOVE.value) == pytest.approx(0.9)
    manager.save(config)
    assert "copy: 0.65" in manager.read_text()
    assert "copy_" not in manager.read_text()
    assert flatten_for_env(config)["SORTORA__CONFIDENCE__COPY"] == "0.65"
