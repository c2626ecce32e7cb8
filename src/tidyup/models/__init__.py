"""Tidyup data models."""

from tidyup.models.scanner import CategoryScanner, DirectoryScanner, ScanContext
from tidyup.models.scan_result import CategorySummary, FileEntry, ScanResult
from tidyup.models.clean_result import CleanResult, CleanupReport, DeletionError, ErrorReason

__all__ = [
    "CategoryScanner",
    "CategorySummary",
    "CleanResult",
    "CleanupReport",
    "DeletionError",
    "DirectoryScanner",
    "ErrorReason",
    "FileEntry",
    "ScanContext",
    "ScanResult",
]
