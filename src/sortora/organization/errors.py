"""Error taxonomy for suggestion, execution, and undo."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class OrganizationError(Exception):
    """Base exception for organization failures."""


class UnknownDestination(OrganizationError):
    """Raised when a template references a named destination that is not configured."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown destination '{name}'")
        self.name = name


class InvalidDestination(OrganizationError):
    """Raised when a resolved destination escapes the local base directory."""


class ExecutionError(OrganizationError):
    """Base class for filesystem failures raised by the executor.

    Attributes:
        path: Path involved in the failing call, when known.
    """

    reason = "unknown"

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class SourceMissing(ExecutionError):
    """The source file disappeared before it could be relocated."""

    reason = "source_missing"


class PermissionDenied(ExecutionError):
    """The operating system refused access to the source or destination."""

    reason = "permission_denied"


class CrossDeviceFailure(ExecutionError):
    """A cross-device move could not complete.

    Attributes:
        residual_path: Copy left at the destination when the source could not be removed.
    """

    reason = "cross_device"

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Path] = None,
        residual_path: Optional[Path] = None,
    ) -> None:
        super().__init__(message, path=path)
        self.residual_path = residual_path


class UnknownExecutionFailure(ExecutionError):
    """Any other filesystem failure."""

    reason = "unknown"


class SkipReason(str, Enum):
    """Why a file produced no suggestion."""

    NO_RULE_MATCHED = "no_rule_matched"
    ALREADY_ORGANIZED = "already_organized"
    UNKNOWN_DESTINATION = "unknown_destination"
    INVALID_DESTINATION = "invalid_destination"


class UndoFailure(str, Enum):
    """Why an operation could not be reversed."""

    DESTINATION_GONE = "destination_gone"
    SOURCE_OCCUPIED = "source_occupied"
    ALREADY_UNDONE = "already_undone"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


__all__ = [
    "CrossDeviceFailure",
    "ExecutionError",
    "InvalidDestination",
    "OrganizationError",
    "PermissionDenied",
    "SkipReason",
    "SourceMissing",
    "UndoFailure",
    "UnknownDestination",
    "UnknownExecutionFailure",
]
