"""Executor applying suggestions to the filesystem and logging operations."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional

from sortora.rules.models import ActionKind
from sortora.state import Operation, OperationType, StateError, StateRepository

from .errors import ExecutionError, SourceMissing, UnknownExecutionFailure
from .fileops import (
    classify_os_error,
    copy_file,
    default_trash_dir,
    move_file,
    move_to_trash,
    remove_trash_info,
    unique_path,
)
from .models import OrganizerContext, Suggestion

LOGGER = logging.getLogger(__name__)


class ExecutionState(str, Enum):
    """Lifecycle of a single execution."""

    PLANNED = "planned"
    APPLYING = "applying"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class ExecutionResult:
    """Outcome of executing one suggestion.

    Attributes:
        suggestion: Suggestion that was executed.
        state: Final lifecycle state, or ``PLANNED`` when skipped.
        operation: Logged operation on success.
        error: Classified failure.
        skipped: Whether execution was intentionally not attempted.
    """

    suggestion: Suggestion
    state: ExecutionState
    operation: Optional[Operation] = None
    error: Optional[ExecutionError] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is ExecutionState.COMMITTED


@dataclass
class BatchSummary:
    """End-of-batch counters."""

    succeeded: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"succeeded": self.succeeded, "skipped": self.skipped, "failed": self.failed}


@dataclass
class BatchReport:
    """Results of a batch execution."""

    results: list[ExecutionResult] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)

    @property
    def operations(self) -> list[Operation]:
        return [result.operation for result in self.results if result.operation is not None]

    @property
    def failures(self) -> list[ExecutionResult]:
        return [result for result in self.results if result.error is not None]


_OPERATION_TYPES = {
    ActionKind.MOVE: OperationType.MOVE,
    ActionKind.SUGGEST: OperationType.MOVE,
    ActionKind.ARCHIVE: OperationType.MOVE,
    ActionKind.COPY: OperationType.COPY,
    ActionKind.DELETE: OperationType.DELETE,
}


class Executor:
    """Apply suggestions atomically and append committed operations to the log.

    Writes into the same destination directory are serialized so two
    suggestions resolving to one path never race on collision naming.
    """

    def __init__(
        self,
        context: OrganizerContext,
        repository: StateRepository,
        *,
        overwrite: bool | None = None,
    ) -> None:
        self._context = context
        self._repository = repository
        self._overwrite = (
            context.config.organization.overwrite if overwrite is None else overwrite
        )
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def trash_dir(self) -> Path:
        return self._context.trash_dir or default_trash_dir(home=self._context.home)

    def execute(self, suggestion: Suggestion) -> Operation:
        """Apply ``suggestion`` and return the logged operation.

        Raises:
            SourceMissing: If the source file no longer exists.
            PermissionDenied: If the OS refuses access.
            CrossDeviceFailure: If a cross-device move left a residual copy.
            UnknownExecutionFailure: For any other filesystem failure.
            StateError: If the log store fails; the filesystem change is reversed first.
        """
        source = suggestion.file.path
        op_type = _OPERATION_TYPES[suggestion.action]
        LOGGER.debug("%s %s %s", ExecutionState.PLANNED.value, op_type.value, source)

        if not source.exists():
            self._log_failure(source, "source is missing")
            raise SourceMissing(f"Source file is missing: {source}", path=source)

        LOGGER.debug("%s %s %s", ExecutionState.APPLYING.value, op_type.value, source)
        try:
            if op_type is OperationType.DELETE:
                final = self._apply_delete(source)
            else:
                final = self._apply_transfer(source, suggestion, op_type)
        except ExecutionError as exc:
            self._log_failure(source, str(exc))
            raise
        except OSError as exc:
            error = classify_os_error(exc, source)
            self._log_failure(source, str(error))
            raise error from exc

        operation = Operation(
            type=op_type,
            source=str(source),
            destination=str(final),
            rule_name=suggestion.rule_name,
            confidence=suggestion.confidence,
            created_at=self._context.clock(),
        )
        try:
            logged = self._repository.append_operation(operation)
        except StateError:
            LOGGER.error("Operation log unavailable; reverting %s", source)
            self._revert(op_type, source, final)
            raise
        LOGGER.debug("%s %s %s -> %s", ExecutionState.COMMITTED.value, op_type.value, source, final)
        return logged

    def execute_many(
        self, suggestions: Iterable[Suggestion], *, dry_run: bool = False
    ) -> BatchReport:
        """Execute suggestions independently, collecting per-item results.

        Filesystem failures are recorded and the batch continues; log store
        failures abort the batch.
        """
        report = BatchReport()
        for suggestion in suggestions:
            if dry_run:
                report.results.append(
                    ExecutionResult(
                        suggestion=suggestion, state=ExecutionState.PLANNED, skipped=True
                    )
                )
                report.summary.skipped += 1
                continue
            try:
                operation = self.execute(suggestion)
            except ExecutionError as exc:
                report.results.append(
                    ExecutionResult(suggestion=suggestion, state=ExecutionState.FAILED, error=exc)
                )
                report.summary.failed += 1
                continue
            report.results.append(
                ExecutionResult(
                    suggestion=suggestion, state=ExecutionState.COMMITTED, operation=operation
                )
            )
            report.summary.succeeded += 1
        return report

    # Internal helpers -------------------------------------------------

    def _apply_transfer(self, source: Path, suggestion: Suggestion, op_type: OperationType) -> Path:
        if suggestion.destination is None:
            raise UnknownExecutionFailure(
                f"Suggestion for {source} has no destination", path=source
            )
        destination = suggestion.destination
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self._directory_lock(destination.parent):
            final = destination if self._overwrite else unique_path(destination)
            if op_type is OperationType.COPY:
                return copy_file(source, final)
            return move_file(source, final)

    def _apply_delete(self, source: Path) -> Path:
        trash_dir = self.trash_dir
        with self._directory_lock(trash_dir):
            return move_to_trash(source, trash_dir, now=self._context.clock())

    def _revert(self, op_type: OperationType, source: Path, final: Path) -> None:
        try:
            if op_type is OperationType.COPY:
                final.unlink()
                return
            move_file(final, source)
            if op_type is OperationType.DELETE:
                remove_trash_info(final)
        except OSError as exc:
            LOGGER.error("Unable to revert %s -> %s: %s", final, source, exc)

    @contextmanager
    def _directory_lock(self, directory: Path) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(directory, threading.Lock())
        with lock:
            yield

    def _log_failure(self, source: Path, reason: str) -> None:
        LOGGER.warning("%s %s: %s", ExecutionState.FAILED.value, source, reason)


__all__ = ["BatchReport", "BatchSummary", "ExecutionResult", "ExecutionState", "Executor"]
