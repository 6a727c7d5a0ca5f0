"""Tests for reversing logged operations."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import NOW
from sortora.organization import Executor, Suggestion, UndoFailure, UndoManager
from sortora.rules import ActionKind
from sortora.state import Operation, OperationType, StateRepository


@pytest.fixture
def executor(make_context, repository: StateRepository) -> Executor:
    return Executor(make_context(), repository)


@pytest.fixture
def undo(repository: StateRepository) -> UndoManager:
    return UndoManager(repository, clock=lambda: NOW)


def _apply(executor: Executor, file, destination: Path | None, action=ActionKind.MOVE):
    return executor.execute(
        Suggestion(
            file=file, destination=destination, rule_name="Rule", action=action, confidence=1.0
        )
    )


def test_undo_last_restores_most_recent_move_first(
    executor: Executor, undo: UndoManager, repository: StateRepository, make_file, tmp_path: Path
) -> None:
    """Ensure undo reverses the newest move and marks it undone.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        repository: Repository fixture backed by a temporary database.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    first = make_file("a.txt")
    second = make_file("b.txt")
    _apply(executor, first, tmp_path / "Docs" / "a.txt")
    _apply(executor, second, tmp_path / "Docs" / "b.txt")

    results = undo.undo_last()

    assert len(results) == 1
    assert results[0].success
    assert results[0].operation is not None
    assert results[0].operation.undone_at == NOW
    assert second.path.exists()
    assert not first.path.exists()
    assert len(repository.query_recent_operations(active_only=True)) == 1


def test_undo_last_many(executor: Executor, undo: UndoManager, make_file, tmp_path) -> None:
    """Verify undoing several operations restores every file.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    files = [make_file(f"{name}.txt") for name in "abc"]
    for file in files:
        _apply(executor, file, tmp_path / "Docs" / file.filename)

    results = undo.undo_last(5)

    assert [result.success for result in results] == [True, True, True]
    assert all(file.path.exists() for file in files)
    assert undo.undo_last() == []


def test_undo_copy_removes_the_copy(
    executor: Executor, undo: UndoManager, make_file, tmp_path: Path
) -> None:
    """Ensure undoing a copy deletes the copy and keeps the source.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    file = make_file("photo.jpg")
    copy = tmp_path / "Backup" / "photo.jpg"
    _apply(executor, file, copy, ActionKind.COPY)

    [result] = undo.undo_last()

    assert result.success
    assert not copy.exists()
    assert file.path.exists()


def test_undo_delete_restores_from_trash(
    executor: Executor, undo: UndoManager, make_file, tmp_path: Path
) -> None:
    """Ensure a trashed file returns to its source and its info record disappears.

    Args:
        executor: Executor fixture.
        undo: Undo manager fixture.
        make_file: File factory fixture.
        tmp_path: Temporary directory provided by pytest.
    """
    file = make_file("scratch.tmp", content="keep me")
    operation = _apply(executor, file, None, ActionKind.DELETE)
    trashed = Path(operation.destination)
    info = tmp_path / "Trash" / "info" / f"{trashed.name}.trashinfo"
    assert info.exists()

    [result] = undo.undo_last()

    assert result.success
    assert file.path.read_text(encoding="utf-8") == "keep me"
    assert not trashed.exists()
    assert not info.exists()


def test_undo_refuses_to_overwrite_source(
    executor: Executor, undo: UndoManager, repository: StateRepository, make_file, tmp_path
) -> None:
    """Ensure undo reports SOURCE_OCCUPIED instead of overwriting a new file.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        repository: Repository fixture backed by a temporary database.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    file = make_file("a.txt", content="original")
    _apply(executor, file, tmp_path / "Docs" / "a.txt")
    file.path.write_text("replacement", encoding="utf-8")

    [result] = undo.undo_last()

    assert not result.success
    assert result.failure is UndoFailure.SOURCE_OCCUPIED
    assert file.path.read_text(encoding="utf-8") == "replacement"
    assert (tmp_path / "Docs" / "a.txt").exists()
    assert len(repository.query_recent_operations(active_only=True)) == 1


def test_undo_reports_missing_destination(
    executor: Executor, undo: UndoManager, make_file, tmp_path: Path
) -> None:
    """Ensure a vanished destination is reported as DESTINATION_GONE.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    destination = tmp_path / "Docs" / "a.txt"
    _apply(executor, make_file("a.txt"), destination)
    destination.unlink()

    [result] = undo.undo_last()

    assert result.failure is UndoFailure.DESTINATION_GONE


def test_undo_failure_does_not_block_others(
    executor: Executor, undo: UndoManager, make_file, tmp_path: Path
) -> None:
    """Ensure one failed reversal does not stop the remaining undos.

    Args:
        executor: Executor fixture writing to the temporary repository.
        undo: Undo manager sharing the executor's repository.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    keep = make_file("keep.txt")
    _apply(executor, keep, tmp_path / "Docs" / "keep.txt")
    lost = tmp_path / "Docs" / "lost.txt"
    _apply(executor, make_file("lost.txt"), lost)
    lost.unlink()

    results = undo.undo_last(2)

    assert [result.success for result in results] == [False, True]
    assert keep.path.exists()


def test_undo_operation_by_id(
    undo: UndoManager, repository: StateRepository, make_file, tmp_path: Path
) -> None:
    """Verify undoing by id, including already undone and unknown ids.

    Args:
        undo: Undo manager sharing the executor's repository.
        repository: Repository fixture backed by a temporary database.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    source = tmp_path / "inbox" / "a.txt"
    destination = tmp_path / "Docs" / "a.txt"
    destination.parent.mkdir(parents=True)
    destination.write_text("data", encoding="utf-8")
    operation = repository.append_operation(
        Operation(type=OperationType.MOVE, source=str(source), destination=str(destination))
    )
    assert operation.id is not None

    assert undo.undo_operation(operation.id).success
    assert source.exists()

    again = undo.undo_operation(operation.id)
    assert again.failure is UndoFailure.ALREADY_UNDONE
    assert undo.undo_operation(999).failure is UndoFailure.NOT_FOUND


def test_undo_last_with_non_positive_count(undo: UndoManager) -> None:
    """Verify a zero count undoes nothing.

    Args:
        undo: Undo manager sharing the executor's repository.
    """
    assert undo.undo_last(0) == []
