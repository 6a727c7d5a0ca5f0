"""Undo manager reversing logged operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from sortora.state import MissingStateError, Operation, OperationType, StateRepository

from .errors import CrossDeviceFailure, UndoFailure
from .fileops import move_file, remove_trash_info

LOGGER = logging.getLogger(__name__)


@dataclass
class UndoResult:
    """Outcome of reversing one operation.

    Attributes:
        operation: Operation that was targeted, when it exists.
        success: Whether the filesystem change was reversed and the record marked undone.
        failure: Failure category when ``success`` is false.
        message: Human-readable detail.
    """

    operation: Optional[Operation]
    success: bool
    failure: Optional[UndoFailure] = None
    message: Optional[str] = None


class UndoManager:
    """Reverse operations recorded in the log, newest first."""

    def __init__(
        self,
        repository: StateRepository,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def undoable_operations(self, limit: int | None = None) -> list[Operation]:
        """Return active operations, newest first."""
        return self._repository.query_recent_operations(limit, active_only=True)

    def undo_last(self, n: int = 1) -> list[UndoResult]:
        """Reverse the ``n`` most recent active operations.

        Each reversal is attempted independently; a failure leaves that
        operation active and does not stop the others.
        """
        if n <= 0:
            return []
        return [self._undo(operation) for operation in self.undoable_operations(n)]

    def undo_operation(self, operation_id: int) -> UndoResult:
        """Reverse a specific operation by id."""
        try:
            operation = self._repository.get_operation(operation_id)
        except MissingStateError as exc:
            return UndoResult(
                operation=None, success=False, failure=UndoFailure.NOT_FOUND, message=str(exc)
            )
        if not operation.is_active:
            return UndoResult(
                operation=operation,
                success=False,
                failure=UndoFailure.ALREADY_UNDONE,
                message=f"Operation {operation_id} was already undone",
            )
        return self._undo(operation)

    def _undo(self, operation: Operation) -> UndoResult:
        failure = self._reverse(operation)
        if failure is not None:
            kind, message = failure
            LOGGER.warning("Unable to undo operation %s: %s", operation.id, message)
            return UndoResult(operation=operation, success=False, failure=kind, message=message)

        undone_at = self._clock()
        if operation.id is None or not self._repository.mark_undone(operation.id, undone_at):
            return UndoResult(
                operation=operation,
                success=False,
                failure=UndoFailure.ALREADY_UNDONE,
                message=f"Operation {operation.id} was already undone",
            )
        LOGGER.info("Undid %s operation %s", operation.type.value, operation.id)
        return UndoResult(
            operation=operation.model_copy(update={"undone_at": undone_at}), success=True
        )

    def _reverse(self, operation: Operation) -> Optional[tuple[UndoFailure, str]]:
        if operation.destination is None:
            return UndoFailure.UNKNOWN, "Operation has no recorded destination"
        destination = Path(operation.destination)
        source = Path(operation.source)
        if not destination.exists():
            return UndoFailure.DESTINATION_GONE, f"{destination} no longer exists"

        try:
            if operation.type is OperationType.COPY:
                destination.unlink()
                return None
            if source.exists():
                return UndoFailure.SOURCE_OCCUPIED, f"{source} already exists"
            source.parent.mkdir(parents=True, exist_ok=True)
            move_file(destination, source)
            if operation.type is OperationType.DELETE:
                remove_trash_info(destination)
        except PermissionError as exc:
            return UndoFailure.PERMISSION_DENIED, str(exc)
        except CrossDeviceFailure as exc:
            return UndoFailure.UNKNOWN, str(exc)
        except OSError as exc:
            return UndoFailure.UNKNOWN, str(exc)
        return None


__all__ = ["UndoManager", "UndoResult"]
