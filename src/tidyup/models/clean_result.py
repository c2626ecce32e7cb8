"""Cleaning result dataclasses and the deletion error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ErrorReason(str, Enum):
    """Why a single file could not be deleted."""

    PERMISSION_DENIED = "permission_denied"
    FILE_IN_USE = "file_in_use"
    NOT_FOUND = "not_found"
    IS_DIRECTORY = "is_directory"
    INVALID_PATH = "invalid_path"
    PROTECTED = "protected"
    UNKNOWN = "unknown"


_USER_MESSAGES = {
    ErrorReason.PERMISSION_DENIED: "Permission denied, try running with sudo",
    ErrorReason.FILE_IN_USE: "File is in use by another program, close it and try again",
    ErrorReason.NOT_FOUND: "File no longer exists",
    ErrorReason.IS_DIRECTORY: "Path is a directory",
    ErrorReason.INVALID_PATH: "Invalid or unsafe path",
    ErrorReason.PROTECTED: "Path is protected and was left alone",
    ErrorReason.UNKNOWN: "Unexpected error",
}

_LABELS = {
    ErrorReason.PERMISSION_DENIED: "Permission denied",
    ErrorReason.FILE_IN_USE: "File in use",
    ErrorReason.NOT_FOUND: "Not found",
    ErrorReason.IS_DIRECTORY: "Is a directory",
    ErrorReason.INVALID_PATH: "Invalid path",
    ErrorReason.PROTECTED: "Protected",
    ErrorReason.UNKNOWN: "Other errors",
}


@dataclass(frozen=True, slots=True)
class DeletionError:
    """Structured record of one failed deletion."""

    path: Path
    reason: ErrorReason
    message: str = ""
    retryable: bool = False
    needs_root: bool = False

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self.reason]

    @property
    def label(self) -> str:
        return _LABELS[self.reason]

    def __str__(self) -> str:
        detail = self.message or self.user_message
        return f"{self.path}: {detail}"


@dataclass(slots=True)
class CleanResult:
    """Raw result of a deletion batch as reported by the cleaner."""

    deleted_files: list[Path] = field(default_factory=list)
    skipped_files: list[Path] = field(default_factory=list)
    deleted_size: int = 0
    errors: list[DeletionError] = field(default_factory=list)
    dry_run: bool = False


@dataclass(slots=True)
class CleanupReport:
    """Normalized outcome of a confirmed cleanup."""

    deleted_count: int = 0
    deleted_size: int = 0
    skipped_count: int = 0
    error_records: list[DeletionError] = field(default_factory=list)
    was_dry_run: bool = False
    freed_by_category: dict[str, int] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.error_records)


def group_errors(errors: list[DeletionError]) -> dict[ErrorReason, list[DeletionError]]:
    """Group error records by reason, keeping the taxonomy's order."""
    grouped: dict[ErrorReason, list[DeletionError]] = {}
    for reason in ErrorReason:
        matching = [e for e in errors if e.reason is reason]
        if matching:
            grouped[reason] = matching
    return grouped
