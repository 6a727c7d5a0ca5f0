"""Tests for destination template expansion."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from sortora.organization import (
    AudioMetadata,
    ExifMetadata,
    InvalidDestination,
    PlaceholderResolver,
    UnknownDestination,
)


@pytest.fixture
def resolver(tmp_path: Path) -> PlaceholderResolver:
    return PlaceholderResolver(
        {"screenshots": "~/Pictures/Screenshots", "music": str(tmp_path / "Music")},
        home=tmp_path / "home",
    )


def test_resolves_date_and_destination_tokens(
    resolver: PlaceholderResolver, make_file, tmp_path: Path
) -> None:
    """Ensure date and named destination tokens expand in one path.

    Args:
        resolver: Resolver fixture anchored at a temporary home directory.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    file = make_file(
        "Screenshot 2024-01-01.png", created_at=datetime(2024, 1, 1, 9, tzinfo=timezone.utc)
    )

    resolved = resolver.resolve("{destinations.screenshots}/{year}-{month}/", file)

    assert resolved.path == tmp_path / "home" / "Pictures" / "Screenshots" / "2024-01"
    assert not resolved.partial


def test_relative_destinations_are_anchored_to_home(
    resolver: PlaceholderResolver, make_file, tmp_path: Path
) -> None:
    """Verify relative global templates resolve under the home directory.

    Args:
        resolver: Resolver fixture anchored at a temporary home directory.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    resolved = resolver.resolve("Sorted/{year}", make_file("a.txt"))

    assert resolved.path == tmp_path / "home" / "Sorted" / "2024"


def test_missing_metadata_yields_partial_path(
    resolver: PlaceholderResolver, make_file, tmp_path: Path
) -> None:
    """Ensure missing audio metadata empties the segment and flags the result.

    Args:
        resolver: Resolver fixture anchored at a temporary home directory.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    file = make_file("song.mp3", audio=AudioMetadata(artist="Nina Simone"))

    resolved = resolver.resolve("{destinations.music}/{audio.artist}/{audio.album}", file)

    assert resolved.path == tmp_path / "Music" / "Nina Simone"
    assert resolved.partial
    assert resolved.unresolved_tokens == ["audio.album"]


def test_exif_tokens(resolver: PlaceholderResolver, make_file, tmp_path: Path) -> None:
    file = make_file(
        "IMG_0001.jpg", exif=ExifMetadata(captured_at=datetime(2021, 7, 4, tzinfo=timezone.utc))
    )

    resolved = resolver.resolve("~/Photos/{exif.year}/{exif.month}", file)

    assert resolved.path == tmp_path / "home" / "Photos" / "2021" / "07"


def test_unknown_tokens_are_left_verbatim(resolver: PlaceholderResolver, make_file) -> None:
    resolved = resolver.resolve("~/Inbox/{weather}", make_file("a.txt"))

    assert resolved.path.name == "{weather}"
    assert resolved.unknown_tokens == ["weather"]
    assert not resolved.partial


def test_substitution_is_single_pass(tmp_path: Path, make_file) -> None:
    resolver = PlaceholderResolver({"tricky": "~/{year}"}, home=tmp_path)

    resolved = resolver.resolve("{destinations.tricky}", make_file("a.txt"))

    assert resolved.path == tmp_path / "{year}"


def test_unknown_destination_raises(resolver: PlaceholderResolver, make_file) -> None:
    with pytest.raises(UnknownDestination) as excinfo:
        resolver.resolve("{destinations.nowhere}/x", make_file("a.txt"))

    assert excinfo.value.name == "nowhere"


def test_local_mode_uses_destination_leaf_under_base(
    resolver: PlaceholderResolver, make_file, tmp_path: Path
) -> None:
    """Ensure local mode keeps only the destination leaf under the base.

    Args:
        resolver: Resolver fixture anchored at a temporary home directory.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    base = tmp_path / "Downloads"
    file = make_file("Screenshot 1.png", directory=base)

    resolved = resolver.resolve(
        "{destinations.screenshots}/{year}-{month}", file, base_dir=base, use_global=False
    )

    assert resolved.path == base / "Screenshots" / "2024-03"


def test_local_mode_rejects_escaping_templates(
    resolver: PlaceholderResolver, make_file, tmp_path: Path
) -> None:
    """Verify local templates may not climb out of the base directory.

    Args:
        resolver: Resolver fixture anchored at a temporary home directory.
        make_file: Factory writing files under ``tmp_path``.
        tmp_path: Temporary directory provided by pytest.
    """
    base = tmp_path / "Downloads"
    file = make_file("a.txt", directory=base)

    with pytest.raises(InvalidDestination):
        resolver.resolve("../../etc", file, base_dir=base, use_global=False)

    inside = resolver.resolve("/Archive/../Docs", file, base_dir=base, use_global=False)
    assert inside.path == base / "Docs"
