"""Events driving the workflow state machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from tidyup.models.clean_result import CleanupReport
from tidyup.models.scan_result import FileEntry, ScanResult


@dataclass(frozen=True, slots=True)
class ScanComplete:
    result: ScanResult
    error: Exception | None = None


@dataclass(frozen=True, slots=True)
class CategoriesChosen:
    categories: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FilesChosen:
    files: tuple[FileEntry, ...]


@dataclass(frozen=True, slots=True)
class Confirmed:
    pass


@dataclass(frozen=True, slots=True)
class ReviewRequested:
    pass


@dataclass(frozen=True, slots=True)
class CleanupComplete:
    report: CleanupReport


@dataclass(frozen=True, slots=True)
class HelpToggled:
    pass


@dataclass(frozen=True, slots=True)
class BackRequested:
    pass


@dataclass(frozen=True, slots=True)
class QuitRequested:
    pass


WorkflowEvent = Union[
    ScanComplete,
    CategoriesChosen,
    FilesChosen,
    Confirmed,
    ReviewRequested,
    CleanupComplete,
    HelpToggled,
    BackRequested,
    QuitRequested,
]
