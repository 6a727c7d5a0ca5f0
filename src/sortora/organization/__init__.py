"""Organization pipeline: matching, resolution, suggestion, execution, and undo."""

from .engine import RuleEngine
from .errors import (
    CrossDeviceFailure,
    ExecutionError,
    InvalidDestination,
    OrganizationError,
    PermissionDenied,
    SkipReason,
    SourceMissing,
    UndoFailure,
    UnknownDestination,
    UnknownExecutionFailure,
)
from .executor import BatchReport, BatchSummary, ExecutionResult, ExecutionState, Executor
from .models import (
    AIClassification,
    AudioMetadata,
    ExifMetadata,
    FileDescriptor,
    FileMetadata,
    OrganizerContext,
    SkippedFile,
    Suggestion,
    SuggestionBatch,
    SuggestionMode,
    SuggestOptions,
)
from .placeholders import PlaceholderResolver, ResolvedTemplate
from .suggester import Suggester, filter_suggestions, group_by_action, group_by_destination
from .undo import UndoManager, UndoResult

__all__ = [
    "AIClassification",
    "AudioMetadata",
    "BatchReport",
    "BatchSummary",
    "CrossDeviceFailure",
    "ExecutionError",
    "ExecutionResult",
    "ExecutionState",
    "Executor",
    "ExifMetadata",
    "FileDescriptor",
    "FileMetadata",
    "InvalidDestination",
    "OrganizationError",
    "OrganizerContext",
    "PermissionDenied",
    "PlaceholderResolver",
    "ResolvedTemplate",
    "RuleEngine",
    "SkipReason",
    "SkippedFile",
    "SourceMissing",
    "Suggester",
    "Suggestion",
    "SuggestionBatch",
    "SuggestionMode",
    "SuggestOptions",
    "UndoFailure",
    "UndoManager",
    "UndoResult",
    "UnknownDestination",
    "UnknownExecutionFailure",
    "filter_suggestions",
    "group_by_action",
    "group_by_destination",
]
