"""Destination template expansion."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Callable, Mapping, Optional

from .errors import InvalidDestination, UnknownDestination
from .models import FileMetadata

LOGGER = logging.getLogger(__name__)

_TOKEN = re.compile(r"\{([^{}]+)\}")
_DESTINATION_PREFIX = "destinations."


@dataclass
class ResolvedTemplate:
    """Outcome of expanding a destination template.

    Attributes:
        path: Absolute, normalized destination directory.
        partial: Whether any recognized token resolved to an empty segment.
        unresolved_tokens: Recognized tokens whose metadata was missing.
        unknown_tokens: Unrecognized tokens left in the path verbatim.
    """

    path: Path
    partial: bool = False
    unresolved_tokens: list[str] = field(default_factory=list)
    unknown_tokens: list[str] = field(default_factory=list)


def _segment(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.strip().replace("/", "-").replace("\\", "-")


def _two_digits(value: Optional[int]) -> str:
    return "" if value is None else f"{value:02d}"


class PlaceholderResolver:
    """Expand ``{token}`` placeholders against file metadata.

    Recognized tokens are ``{year}``, ``{month}``, ``{destinations.<name>}``,
    ``{exif.year}``, ``{exif.month}``, ``{audio.artist}`` and ``{audio.album}``.
    Substitution happens in a single left-to-right pass.
    """

    def __init__(self, destinations: Mapping[str, str], *, home: Path | None = None) -> None:
        self._destinations = dict(destinations)
        self._home = home or Path.home()

    def resolve(
        self,
        template: str,
        file: FileMetadata,
        *,
        base_dir: Path | None = None,
        use_global: bool = True,
    ) -> ResolvedTemplate:
        """Expand ``template`` into an absolute directory path.

        Args:
            template: Destination template.
            file: Metadata supplying token values.
            base_dir: Scanned root anchoring local-mode destinations.
            use_global: Resolve against the home-anchored destination table.

        Returns:
            ResolvedTemplate: Normalized destination and token diagnostics.

        Raises:
            UnknownDestination: If a ``{destinations.<name>}`` entry is not configured.
            InvalidDestination: If a local destination escapes ``base_dir``.
        """
        unresolved: list[str] = []
        unknown: list[str] = []
        lookups = self._token_values(file)

        def _substitute(match: re.Match[str]) -> str:
            token = match.group(1)
            if token.startswith(_DESTINATION_PREFIX):
                return self._destination(token[len(_DESTINATION_PREFIX) :], use_global=use_global)
            getter = lookups.get(token)
            if getter is None:
                unknown.append(token)
                return match.group(0)
            value = getter()
            if not value:
                unresolved.append(token)
            return value

        expanded = _TOKEN.sub(_substitute, template)
        if unknown:
            LOGGER.debug("Unknown placeholder tokens %s in template %r", unknown, template)

        if use_global or base_dir is None:
            path = self._anchor_global(expanded)
        else:
            path = self._anchor_local(expanded, base_dir)
        return ResolvedTemplate(
            path=path,
            partial=bool(unresolved),
            unresolved_tokens=unresolved,
            unknown_tokens=unknown,
        )

    def _token_values(self, file: FileMetadata) -> dict[str, Callable[[], str]]:
        reference = file.reference_time
        captured = file.exif.captured_at if file.exif else None
        audio = file.audio
        return {
            "year": lambda: str(reference.year) if reference else "",
            "month": lambda: _two_digits(reference.month if reference else None),
            "exif.year": lambda: str(captured.year) if captured else "",
            "exif.month": lambda: _two_digits(captured.month if captured else None),
            "audio.artist": lambda: _segment(audio.artist if audio else None),
            "audio.album": lambda: _segment(audio.album if audio else None),
        }

    def _destination(self, name: str, *, use_global: bool) -> str:
        if name not in self._destinations:
            raise UnknownDestination(name)
        value = self._destinations[name]
        if use_global:
            return value
        return PurePath(os.path.expanduser(value)).name or name

    def _anchor_global(self, expanded: str) -> Path:
        text = expanded.strip()
        if text == "~" or text.startswith("~/") or text.startswith("~\\"):
            text = str(self._home) + text[1:]
        path = Path(text)
        if not path.is_absolute():
            path = self._home / path
        return Path(os.path.normpath(path))

    def _anchor_local(self, expanded: str, base_dir: Path) -> Path:
        text = expanded.strip()
        if text.startswith("~"):
            text = text[1:]
        relative = PurePath(text)
        if relative.anchor:
            relative = relative.relative_to(relative.anchor)
        base = Path(os.path.normpath(base_dir))
        candidate = Path(os.path.normpath(base / relative))
        if candidate != base and base not in candidate.parents:
            raise InvalidDestination(f"Destination '{expanded}' escapes base directory {base}")
        return candidate


__all__ = ["PlaceholderResolver", "ResolvedTemplate"]
