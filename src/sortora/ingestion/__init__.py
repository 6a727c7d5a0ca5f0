"""Scanner and analyzer adapters producing file metadata for the CLI."""

from .analysis import analyze, analyze_all, detect_category
from .discovery import DirectoryScanner

__all__ = ["DirectoryScanner", "analyze", "analyze_all", "detect_category"]
