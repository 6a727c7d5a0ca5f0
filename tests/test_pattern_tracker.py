"""Tests for the pattern tracker."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from conftest import NOW
from sortora.config.models import LearningSettings
from sortora.learning import PatternTracker, filename_family, infer_signals
from sortora.state import Operation, OperationType, PatternType, StateRepository


@pytest.fixture
def tracker(repository: StateRepository) -> PatternTracker:
    return PatternTracker(repository, clock=lambda: NOW)


def _operation(source: Path, *, to: Path | None = None, **fields) -> Operation:
    values = {
        "type": OperationType.MOVE,
        "source": str(source),
        "destination": str(to) if to is not None else None,
        "confidence": 0.6,
    }
    values.update(fields)
    return Operation(**values)


@pytest.mark.parametrize(
    ("filename", "family"),
    [
        ("Screenshot 2024-01-01.png", "Screenshot*"),
        ("IMG_0042.JPG", "IMG_*"),
        ("ACME-Invoice-7.pdf", "*invoice*"),
        ("scan_0001.pdf", "scan*"),
        ("notes.txt", None),
    ],
)
def test_filename_family(filename: str, family: str | None) -> None:
    assert filename_family(filename) == family


def test_infer_signals() -> None:
    signals = infer_signals(Path("/home/me/Downloads/invoice-7.PDF"))

    assert signals == [
        (PatternType.EXTENSION, "pdf"),
        (PatternType.FILENAME, "*invoice*"),
        (PatternType.FOLDER, "/home/me/Downloads"),
    ]


def test_confidence_grows_and_saturates(tracker: PatternTracker) -> None:
    assert tracker.confidence_for_occurrences(0) == 0.0
    assert tracker.confidence_for_occurrences(1) == pytest.approx(0.5)
    assert tracker.confidence_for_occurrences(2) == pytest.approx(0.75)
    assert tracker.confidence_for_occurrences(5) == pytest.approx(0.96875)


def test_observe_records_signals_against_destination_folder(
    tracker: PatternTracker, tmp_path: Path
) -> None:
    source = tmp_path / "Downloads" / "invoice-1.pdf"
    destination = tmp_path / "Finance" / "invoice-1.pdf"

    updated = tracker.observe(_operation(source, to=destination))

    assert {(p.type, p.pattern) for p in updated} == {
        (PatternType.EXTENSION, "pdf"),
        (PatternType.FILENAME, "*invoice*"),
        (PatternType.FOLDER, str(tmp_path / "Downloads")),
    }
    assert all(p.destination == str(tmp_path / "Finance") for p in updated)
    assert all(p.occurrences == 1 for p in updated)


@pytest.mark.parametrize(
    "fields",
    [
        {"type": OperationType.DELETE},
        {"undone_at": NOW},
        {"destination": None},
        {"confidence": 1.0},
    ],
)
def test_observe_ignores_operations_that_teach_nothing(
    tracker: PatternTracker, tmp_path: Path, fields: dict
) -> None:
    operation = _operation(tmp_path / "a.pdf", to=tmp_path / "Docs" / "a.pdf", **fields)

    assert tracker.observe(operation) == []
    assert tracker.stats().total_patterns == 0


def test_observe_is_disabled_by_settings(repository: StateRepository, tmp_path: Path) -> None:
    tracker = PatternTracker(repository, LearningSettings(enabled=False))

    assert tracker.observe(_operation(tmp_path / "a.pdf", to=tmp_path / "Docs" / "a.pdf")) == []


def test_learned_patterns_require_occurrences_and_confidence(
    tracker: PatternTracker, tmp_path: Path
) -> None:
    """Ensure a single observation is not yet a learned pattern.

    Args:
        tracker: Tracker fixture with default learning settings.
        tmp_path: Temporary directory provided by pytest.
    """
    docs = tmp_path / "Docs"
    tracker.record_move(tmp_path / "a.pdf", docs / "a.pdf", [(PatternType.EXTENSION, "pdf")])
    assert tracker.get_learned_patterns() == []

    tracker.record_move(tmp_path / "b.pdf", docs / "b.pdf", [(PatternType.EXTENSION, "pdf")])
    [learned] = tracker.get_learned_patterns()

    assert learned.pattern == "pdf"
    assert learned.occurrences == 2
    assert learned.confidence == pytest.approx(0.75)
    assert tracker.get_learned_patterns(min_confidence=0.8) == []


def test_suggest_destination_prefers_extension_patterns(
    tracker: PatternTracker, make_file, tmp_path: Path
) -> None:
    for index in range(2):
        tracker.record_move(
            tmp_path / f"scan_{index}.pdf",
            tmp_path / "Scans" / "x.pdf",
            [(PatternType.FILENAME, "scan*")],
        )
        tracker.record_move(
            tmp_path / f"doc{index}.pdf",
            tmp_path / "Docs" / "x.pdf",
            [(PatternType.EXTENSION, "pdf")],
        )

    best = tracker.suggest_destination(make_file("scan_9.pdf"))

    assert best is not None
    assert best.type is PatternType.EXTENSION
    assert best.destination == str(tmp_path / "Docs")
    assert tracker.suggest_destination(make_file("song.mp3")) is None


def test_confidence_for_directory(tracker: PatternTracker, make_file, tmp_path: Path) -> None:
    for name in ("a.pdf", "b.pdf"):
        tracker.record_move(tmp_path / name, tmp_path / "Docs" / name)

    file = make_file("c.pdf")

    assert tracker.confidence_for(file, tmp_path / "Docs") == pytest.approx(0.75)
    assert tracker.confidence_for(file, tmp_path / "Elsewhere") is None


def test_prune_and_stats(repository: StateRepository, tmp_path: Path) -> None:
    old = PatternTracker(repository, clock=lambda: NOW - timedelta(days=200))
    old.record_move(
        tmp_path / "a.tmp", tmp_path / "Tmp" / "a.tmp", [(PatternType.EXTENSION, "tmp")]
    )
    current = PatternTracker(repository, clock=lambda: NOW)
    current.record_move(tmp_path / "b.pdf", tmp_path / "Docs" / "b.pdf")

    before = current.stats()
    removed = current.prune()
    after = current.stats()

    assert before.total_patterns == 3
    assert before.by_type == {"extension": 2, "folder": 1}
    assert before.top_destinations[0] == (str(tmp_path / "Docs"), 2)
    assert removed == 1
    assert after.total_patterns == 2
