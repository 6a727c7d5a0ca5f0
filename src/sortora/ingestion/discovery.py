"""File discovery utilities."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from sortora.organization.models import FileDescriptor

LOGGER = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class DirectoryScanner:
    """Discover files within a directory tree and describe them from ``stat``."""

    def __init__(
        self,
        *,
        recursive: bool = False,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks

    def scan(self, root: Path) -> Iterator[FileDescriptor]:
        """Yield descriptors for files under ``root`` respecting the scanner filters."""
        root = root.expanduser().resolve()
        if not root.exists():
            return

        for path in self._iter_paths(root):
            if path.is_symlink() and not self.follow_symlinks:
                continue
            if not path.is_file():
                continue
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if not self.include_hidden and _is_hidden(relative):
                continue
            try:
                stat = path.stat()
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", path, exc)
                continue

            created = getattr(stat, "st_birthtime", None) or stat.st_ctime
            yield FileDescriptor(
                path=path,
                filename=path.name,
                extension=path.suffix.lower().lstrip("."),
                size=stat.st_size,
                created_at=_timestamp(min(created, stat.st_mtime)),
                modified_at=_timestamp(stat.st_mtime),
                accessed_at=_timestamp(stat.st_atime),
            )

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        if root.is_file():
            yield root
            return

        if self.recursive:
            yield from sorted(root.rglob("*"))
        else:
            yield from sorted(root.iterdir())


__all__ = ["DirectoryScanner"]
