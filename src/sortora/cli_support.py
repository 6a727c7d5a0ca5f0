"""Helpers shared by Sortora CLI commands."""

from __future__ import annotations

import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sortora.config import SortoraConfig
from sortora.config.models import LoggingSettings
from sortora.learning import FeedbackHandler, PatternTracker, RuleSuggester
from sortora.organization import (
    Executor,
    ExecutionResult,
    OrganizerContext,
    SkippedFile,
    Suggester,
    Suggestion,
    UndoManager,
    UndoResult,
)
from sortora.state import Operation, StateRepository

_HANDLER_FLAG = "_sortora_cli_handler"


def configure_logging(settings: LoggingSettings, *, quiet: bool = False) -> None:
    """Attach a rotating file handler and a stderr handler to the ``sortora`` logger.

    Handlers installed by an earlier call are replaced.

    Args:
        settings: Logging configuration.
        quiet: Raise the stderr threshold to ``ERROR``.
    """
    logger = logging.getLogger("sortora")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()

    level = logging.getLevelName(settings.level)
    logger.setLevel(logging.DEBUG if settings.file else level)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    stream = logging.StreamHandler()
    stream.setLevel(logging.ERROR if quiet else level)
    stream.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    setattr(stream, _HANDLER_FLAG, True)
    logger.addHandler(stream)

    if settings.file:
        path = Path(settings.file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                path,
                maxBytes=settings.max_size_mb * 1024 * 1024,
                backupCount=settings.backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("File logging disabled: %s", exc)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_FLAG, True)
            logger.addHandler(file_handler)
    logger.propagate = False


@dataclass
class Runtime:
    """Collaborators wired from one loaded configuration."""

    config: SortoraConfig
    context: OrganizerContext
    repository: StateRepository
    tracker: PatternTracker
    suggester: Suggester
    executor: Executor
    undo: UndoManager
    rule_suggester: RuleSuggester
    feedback: FeedbackHandler


def build_runtime(config: SortoraConfig, *, home: Path | None = None) -> Runtime:
    """Construct the organizer context and every service the CLI needs.

    Raises:
        StateError: If the state database cannot be opened.
    """
    context = OrganizerContext.from_config(config, home=home)
    repository = StateRepository(Path(config.storage.database_path))
    tracker = PatternTracker(repository, config.learning, clock=context.clock)
    suggester = Suggester(
        context,
        pattern_confidence=tracker.confidence_for if config.learning.enabled else None,
    )
    return Runtime(
        config=config,
        context=context,
        repository=repository,
        tracker=tracker,
        suggester=suggester,
        executor=Executor(context, repository),
        undo=UndoManager(repository, clock=context.clock),
        rule_suggester=RuleSuggester(
            tracker,
            lambda: context.rules,
            settings=config.learning,
            destinations=context.destinations,
            home=context.home,
        ),
        feedback=FeedbackHandler(tracker),
    )


def suggestion_payload(suggestion: Suggestion) -> dict[str, Any]:
    return {
        "source": str(suggestion.file.path),
        "destination": str(suggestion.destination) if suggestion.destination else None,
        "rule": suggestion.rule_name,
        "action": suggestion.action.value,
        "confidence": round(suggestion.confidence, 4),
        "mode": suggestion.mode.value,
        "requires_confirmation": suggestion.requires_confirmation,
        "partial": suggestion.partial,
        "unknown_tokens": list(suggestion.unknown_tokens),
    }


def skipped_payload(entry: SkippedFile) -> dict[str, Any]:
    return {
        "source": str(entry.file.path),
        "reason": entry.reason.value,
        "rule": entry.rule_name,
        "detail": entry.detail,
    }


def operation_payload(operation: Operation) -> dict[str, Any]:
    return operation.model_dump(mode="json")


def execution_payload(result: ExecutionResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "source": str(result.suggestion.file.path),
        "state": result.state.value,
        "skipped": result.skipped,
    }
    if result.operation is not None:
        payload["operation"] = operation_payload(result.operation)
    if result.error is not None:
        payload["error"] = {"reason": result.error.reason, "message": str(result.error)}
    return payload


def undo_payload(result: UndoResult) -> dict[str, Any]:
    return {
        "operation": operation_payload(result.operation) if result.operation else None,
        "success": result.success,
        "failure": result.failure.value if result.failure else None,
        "message": result.message,
    }


def display_path(path: Path | str | None, root: Path | None = None) -> str:
    """Return ``path`` relative to ``root`` when possible, else with ``~`` for home."""
    if path is None:
        return "-"
    candidate = Path(path)
    if root is not None:
        try:
            return str(candidate.relative_to(root))
        except ValueError:
            pass
    try:
        return "~/" + str(candidate.relative_to(Path.home()))
    except ValueError:
        return str(candidate)


__all__ = [
    "Runtime",
    "build_runtime",
    "configure_logging",
    "display_path",
    "execution_payload",
    "operation_payload",
    "skipped_payload",
    "suggestion_payload",
    "undo_payload",
]
