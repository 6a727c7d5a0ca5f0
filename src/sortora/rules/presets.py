"""Built-in rule presets used when ``organization.use_default_rules`` is enabled."""

from __future__ import annotations

from typing import Any

from .models import Rule

_DEFAULT_RULES: list[dict[str, Any]] = [
    {
        "name": "Screenshots",
        "priority": 100,
        "match": {
            "extension": ["png", "jpg", "jpeg"],
            "filename": ["Screenshot*", "Screen Shot*", "Capture*"],
        },
        "action": {"move_to": "{destinations.screenshots}/{year}-{month}/"},
        "local_destination": "Screenshots/{year}-{month}",
    },
    {
        "name": "Temporary files",
        "priority": 100,
        "match": {"extension": ["tmp", "temp", "bak", "swp", "swo"]},
        "action": {"delete": True},
    },
    {
        "name": "Incomplete downloads",
        "priority": 100,
        "match": {"extension": ["crdownload", "part", "partial", "download"]},
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Old installers",
        "priority": 100,
        "match": {
            "extension": ["dmg", "pkg", "exe", "msi", "deb", "rpm", "appimage"],
            "age": "> 30 days",
        },
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Office lock files",
        "priority": 100,
        "match": {"filename": ["~$*"]},
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Resumes",
        "priority": 95,
        "match": {"extension": ["pdf", "docx", "doc"], "filename": ["*resume*", "*cv*"]},
        "action": {"move_to": "{destinations.documents}/Resumes/"},
        "local_destination": "Documents/Resumes",
    },
    {
        "name": "Photos with EXIF",
        "priority": 90,
        "match": {
            "extension": ["jpg", "jpeg", "heic", "heif", "raw", "cr2", "nef", "arw", "dng"],
            "has_exif": True,
        },
        "action": {"move_to": "{destinations.photos}/{exif.year}/{exif.month}/"},
        "local_destination": "Photos/{exif.year}/{exif.month}",
    },
    {
        "name": "Invoices",
        "priority": 90,
        "match": {"extension": ["pdf"], "filename": ["*invoice*", "*receipt*"]},
        "action": {"move_to": "{destinations.finance}/Invoices/{year}/"},
        "local_destination": "Finance/Invoices/{year}",
    },
    {
        "name": "Contracts",
        "priority": 90,
        "match": {
            "extension": ["pdf", "docx", "doc"],
            "filename": ["*contract*", "*agreement*"],
        },
        "action": {"move_to": "{destinations.documents}/Contracts/{year}/"},
        "local_destination": "Documents/Contracts/{year}",
    },
    {
        "name": "Torrents",
        "priority": 90,
        "match": {"extension": ["torrent"]},
        "action": {"suggest_to": "{destinations.archives}/Torrents/"},
        "local_destination": "Torrents",
    },
    {
        "name": "E-books",
        "priority": 85,
        "match": {"extension": ["epub", "mobi", "azw", "azw3", "fb2", "djvu"]},
        "action": {"move_to": "{destinations.documents}/Books/"},
        "local_destination": "Books",
    },
    {
        "name": "Music files",
        "priority": 85,
        "match": {"extension": ["mp3", "flac", "wav", "aac", "ogg", "m4a", "wma", "alac"]},
        "action": {"move_to": "{destinations.music}/{audio.artist}/{audio.album}/"},
        "local_destination": "Music/{audio.artist}/{audio.album}",
    },
    {
        "name": "Video files",
        "priority": 85,
        "match": {"extension": ["mp4", "mkv", "avi", "mov", "webm", "wmv", "flv", "m4v"]},
        "action": {"suggest_to": "{destinations.video}/{year}/"},
        "local_destination": "Videos/{year}",
    },
    {
        "name": "Fonts",
        "priority": 85,
        "match": {"extension": ["ttf", "otf", "woff", "woff2", "eot"]},
        "action": {"suggest_to": "{destinations.documents}/Fonts/"},
        "local_destination": "Fonts",
    },
    {
        "name": "Design files",
        "priority": 85,
        "match": {"extension": ["psd", "ai", "sketch", "fig", "xd"]},
        "action": {"suggest_to": "{destinations.photos}/Design/"},
        "local_destination": "Design",
    },
    {
        "name": "Other images",
        "priority": 80,
        "match": {"type": "image"},
        "action": {"suggest_to": "{destinations.photos}/Unsorted/"},
        "local_destination": "Images/{year}",
    },
    {
        "name": "Spreadsheets",
        "priority": 75,
        "match": {"extension": ["xlsx", "xls", "csv", "numbers", "ods"]},
        "action": {"suggest_to": "{destinations.documents}/Spreadsheets/{year}/"},
        "local_destination": "Documents/Spreadsheets/{year}",
    },
    {
        "name": "Presentations",
        "priority": 75,
        "match": {"extension": ["pptx", "ppt", "key", "odp"]},
        "action": {"suggest_to": "{destinations.documents}/Presentations/{year}/"},
        "local_destination": "Documents/Presentations/{year}",
    },
    {
        "name": "Archives",
        "priority": 75,
        "match": {"extension": ["zip", "rar", "7z", "tar", "gz", "bz2", "xz", "tgz"]},
        "action": {"suggest_to": "{destinations.archives}/"},
        "local_destination": "Archives",
    },
    {
        "name": "PDF documents",
        "priority": 70,
        "match": {"extension": ["pdf"]},
        "action": {"suggest_to": "{destinations.documents}/{year}/"},
        "local_destination": "Documents/{year}",
    },
    {
        "name": "Office documents",
        "priority": 70,
        "match": {"extension": ["docx", "doc", "odt", "rtf", "pages"]},
        "action": {"suggest_to": "{destinations.documents}/{year}/"},
        "local_destination": "Documents/{year}",
    },
    {
        "name": "Disk images",
        "priority": 70,
        "match": {"extension": ["iso", "img", "dmg"]},
        "action": {"suggest_to": "{destinations.archives}/Disk Images/"},
        "local_destination": "Installers",
    },
    {
        "name": "Text files",
        "priority": 65,
        "match": {"extension": ["txt", "md", "markdown", "rst"]},
        "action": {"suggest_to": "{destinations.documents}/Notes/"},
        "local_destination": "Notes",
    },
    {
        "name": "Code files",
        "priority": 60,
        "match": {"type": "code"},
        "action": {"suggest_to": "{destinations.code}/"},
        "local_destination": "Code",
    },
    {
        "name": "Log files",
        "priority": 60,
        "match": {"extension": ["log"]},
        "action": {"suggest_to": "{destinations.archives}/Logs/"},
        "local_destination": "Logs",
    },
    {
        "name": "Old downloads",
        "priority": 50,
        "match": {"age": "> 90 days", "accessed": "> 60 days"},
        "action": {"archive_to": "{destinations.archives}/Old Downloads/", "confirm": True},
        "local_destination": "Archive",
    },
    {
        "name": "System junk",
        "priority": 100,
        "match": {"filename": [".DS_Store", "._*", "Thumbs.db", "desktop.ini"]},
        "action": {"delete": True},
    },
]


def default_rules() -> list[Rule]:
    """Return fresh copies of the built-in rules, tagged with ``origin="preset"``."""
    return [Rule.model_validate({**data, "origin": "preset"}) for data in _DEFAULT_RULES]


__all__ = ["default_rules"]
