"""Lightweight metadata enrichment based on file names and MIME types."""

from __future__ import annotations

import mimetypes
from typing import Iterable, Iterator, Optional

from sortora.organization.models import FileDescriptor, FileMetadata

_CATEGORY_EXTENSIONS: dict[str, set[str]] = {
    "image": {"jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp", "heic", "heif", "raw", "svg"},
    "video": {"mp4", "mkv", "avi", "mov", "webm", "wmv", "flv", "m4v"},
    "audio": {"mp3", "flac", "wav", "aac", "ogg", "m4a", "wma", "alac"},
    "document": {"pdf", "doc", "docx", "odt", "rtf", "pages", "txt", "md", "epub"},
    "spreadsheet": {"xls", "xlsx", "csv", "ods", "numbers"},
    "presentation": {"ppt", "pptx", "odp", "key"},
    "archive": {"zip", "rar", "7z", "tar", "gz", "bz2", "xz", "tgz"},
    "code": {
        "py", "js", "ts", "tsx", "jsx", "java", "c", "cpp", "h", "hpp", "cs", "go",
        "rs", "rb", "php", "swift", "kt", "sh", "sql", "html", "css", "json", "yaml", "yml",
    },
}
_TEXT_EXTENSIONS = {"txt", "md", "csv", "log", "json", "yaml", "yml"}
_TEXT_SAMPLE_BYTES = 64 * 1024


def detect_category(extension: str, mime_type: Optional[str] = None) -> Optional[str]:
    """Return the broad category for an extension, falling back to the MIME family."""
    extension = extension.lower().lstrip(".")
    for category, extensions in _CATEGORY_EXTENSIONS.items():
        if extension in extensions:
            return category
    if mime_type:
        family = mime_type.split("/", 1)[0]
        if family in {"image", "video", "audio"}:
            return family
        if family == "text":
            return "document"
    return None


def analyze(descriptor: FileDescriptor, *, read_text: bool = False) -> FileMetadata:
    """Enrich a descriptor with category, MIME type, and optional text content."""
    mime_type, _ = mimetypes.guess_type(descriptor.filename)
    text: Optional[str] = None
    if read_text and descriptor.extension in _TEXT_EXTENSIONS:
        try:
            with descriptor.path.open("rb") as handle:
                text = handle.read(_TEXT_SAMPLE_BYTES).decode("utf-8", errors="ignore")
        except OSError:
            text = None
    return FileMetadata(
        **descriptor.model_dump(),
        category=detect_category(descriptor.extension, mime_type),
        mime_type=mime_type,
        text_content=text,
    )


def analyze_all(
    descriptors: Iterable[FileDescriptor], *, read_text: bool = False
) -> Iterator[FileMetadata]:
    for descriptor in descriptors:
        yield analyze(descriptor, read_text=read_text)


__all__ = ["analyze", "analyze_all", "detect_category"]
