"""Shared fixtures for the Sortora test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import pytest

from sortora.config import SortoraConfig
from sortora.organization import FileMetadata, OrganizerContext
from sortora.state import StateRepository

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., FileMetadata]:
    """Return a factory that writes a file and describes it as ``FileMetadata``."""

    def _make(
        name: str,
        *,
        directory: Path | None = None,
        content: str = "data",
        create: bool = True,
        **fields: Any,
    ) -> FileMetadata:
        folder = directory or tmp_path / "inbox"
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        if create:
            path.write_text(content, encoding="utf-8")
        values: dict[str, Any] = {
            "path": path,
            "filename": name,
            "extension": path.suffix.lower().lstrip("."),
            "size": len(content.encode("utf-8")),
            "created_at": NOW,
            "modified_at": NOW,
            "accessed_at": NOW,
        }
        values.update(fields)
        return FileMetadata(**values)

    return _make


@pytest.fixture
def destinations(tmp_path: Path) -> dict[str, str]:
    return {
        "screenshots": str(tmp_path / "Pictures" / "Screenshots"),
        "documents": str(tmp_path / "Documents"),
        "finance": str(tmp_path / "Documents" / "Finance"),
        "photos": str(tmp_path / "Pictures" / "Sorted"),
    }


@pytest.fixture
def make_context(
    tmp_path: Path, destinations: dict[str, str]
) -> Callable[..., OrganizerContext]:
    """Return a factory building an ``OrganizerContext`` isolated under ``tmp_path``."""

    def _make(
        rules: Iterable[Mapping[str, Any]] = (),
        *,
        presets: bool = False,
        clock: Callable[[], datetime] | None = None,
        config: Mapping[str, Any] | None = None,
        **organization: Any,
    ) -> OrganizerContext:
        data: dict[str, Any] = {
            "organization": {"use_default_rules": presets, **organization},
            "destinations": dict(destinations),
            "storage": {
                "database_path": str(tmp_path / "state" / "sortora.db"),
                "trash_dir": str(tmp_path / "Trash" / "files"),
            },
            "rules": [dict(rule) for rule in rules],
        }
        data.update(config or {})
        return OrganizerContext.from_config(
            SortoraConfig.model_validate(data),
            home=tmp_path / "home",
            clock=clock or (lambda: NOW),
        )

    return _make


@pytest.fixture
def repository(tmp_path: Path) -> StateRepository:
    return StateRepository(tmp_path / "state" / "sortora.db")
