"""Filesystem primitives used by the executor and undo manager."""

from __future__ import annotations

import errno
import logging
import os
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import quote

from .errors import (
    CrossDeviceFailure,
    ExecutionError,
    PermissionDenied,
    SourceMissing,
    UnknownExecutionFailure,
)

LOGGER = logging.getLogger(__name__)


def unique_path(candidate: Path) -> Path:
    """Return ``candidate`` or the first free ``name (n).ext`` sibling.

    The returned path does not exist at call time; concurrent writers outside
    this process can still claim it before it is used.
    """
    if not candidate.exists():
        return candidate
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while True:
        option = candidate.with_name(f"{stem} ({counter}){suffix}")
        if not option.exists():
            return option
        counter += 1


def classify_os_error(exc: OSError, path: Path | None = None) -> ExecutionError:
    """Map an ``OSError`` onto the executor error taxonomy."""
    message = f"{exc.strerror or exc}: {exc.filename or path}"
    if isinstance(exc, FileNotFoundError):
        return SourceMissing(message, path=path)
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return PermissionDenied(message, path=path)
    if exc.errno == errno.EXDEV:
        return CrossDeviceFailure(message, path=path)
    return UnknownExecutionFailure(message, path=path)


def move_file(source: Path, destination: Path) -> Path:
    """Move ``source`` to ``destination``, copying across devices when needed.

    Args:
        source: Existing file.
        destination: Target path; its parent directory must exist.

    Returns:
        Path: The destination path.

    Raises:
        OSError: If the rename (or the copy in the fallback) fails.
        CrossDeviceFailure: If the copy succeeded but the source could not be
            removed; the copy is left at ``residual_path``.
    """
    try:
        os.rename(source, destination)
        return destination
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        LOGGER.debug("Cross-device move for %s; falling back to copy", source)

    try:
        shutil.copy2(source, destination)
    except OSError:
        if destination.exists():
            destination.unlink()
        raise

    try:
        source.unlink()
    except OSError as exc:
        raise CrossDeviceFailure(
            f"Copied {source} to {destination} but could not remove the source: {exc}",
            path=source,
            residual_path=destination,
        ) from exc
    return destination


def copy_file(source: Path, destination: Path) -> Path:
    """Copy ``source`` to ``destination`` preserving metadata."""
    try:
        shutil.copy2(source, destination)
    except OSError:
        if destination.exists():
            destination.unlink()
        raise
    return destination


def default_trash_dir(
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
    platform: str | None = None,
) -> Path:
    """Return the platform trash directory.

    macOS uses ``~/.Trash``; Linux uses ``$XDG_DATA_HOME/Trash/files``;
    every other platform falls back to ``~/.sortora-trash``.
    """
    env = os.environ if env is None else env
    home = home or Path.home()
    platform = platform or sys.platform
    if platform == "darwin":
        return home / ".Trash"
    if platform.startswith("linux"):
        data_home = env.get("XDG_DATA_HOME") or str(home / ".local" / "share")
        return Path(data_home) / "Trash" / "files"
    return home / ".sortora-trash"


def trash_info_path(trashed: Path) -> Optional[Path]:
    """Return the ``.trashinfo`` record location for an XDG trash entry."""
    if trashed.parent.name != "files" or trashed.parent.parent.name != "Trash":
        return None
    return trashed.parent.parent / "info" / f"{trashed.name}.trashinfo"


def move_to_trash(source: Path, trash_dir: Path, now: datetime | None = None) -> Path:
    """Relocate ``source`` into ``trash_dir`` and return its new path.

    Entries are named ``<epoch-millis>-<filename>``. Inside an XDG trash a
    ``.trashinfo`` record is written so desktop tools can restore the file.
    """
    now = now or datetime.now(timezone.utc)
    trash_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(now.timestamp() * 1000)
    target = unique_path(trash_dir / f"{stamp}-{source.name}")
    move_file(source, target)

    info_path = trash_info_path(target)
    if info_path is not None:
        try:
            info_path.parent.mkdir(parents=True, exist_ok=True)
            info_path.write_text(
                "[Trash Info]\n"
                f"Path={quote(str(source))}\n"
                f"DeletionDate={now.astimezone().strftime('%Y-%m-%dT%H:%M:%S')}\n",
                encoding="utf-8",
            )
        except OSError as exc:
            LOGGER.warning("Unable to write trash info for %s: %s", target, exc)
    return target


def remove_trash_info(trashed: Path) -> None:
    """Delete the ``.trashinfo`` record for ``trashed`` if one exists."""
    info_path = trash_info_path(trashed)
    if info_path is not None and info_path.exists():
        info_path.unlink()


__all__ = [
    "classify_os_error",
    "copy_file",
    "default_trash_dir",
    "move_file",
    "move_to_trash",
    "remove_trash_info",
    "trash_info_path",
    "unique_path",
]
