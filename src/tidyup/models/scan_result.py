"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable


@dataclass(frozen=True, slots=True)
class FileEntry:
    """Single file found by a scanner.

    Entries are immutable once produced; the wizard only ever reads them.
    ``reason`` is a short human explanation of why the file is a candidate
    and ``digest`` is filled in for content duplicates only.
    """

    path: Path
    size_bytes: int
    mtime: float
    category: str
    reason: str = ""
    digest: str = ""

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class CategorySummary:
    """Aggregate count and size of one category."""

    count: int = 0
    size_bytes: int = 0


@dataclass(slots=True)
class ScanResult:
    """Result of scanning for cleanable files.

    ``errors`` lists directories that were skipped because they could not
    be read. They do not make the scan fail.
    """

    files: list[FileEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_count(self) -> int:
        return len(self.files)

    def merge(self, other: ScanResult) -> None:
        """Append another result's files and errors to this one."""
        self.files.extend(other.files)
        self.errors.extend(other.errors)

    def group_by_category(self) -> dict[str, CategorySummary]:
        """Count and size per category, in order of first appearance."""
        counts: dict[str, list[int]] = {}
        for entry in self.files:
            bucket = counts.setdefault(entry.category, [0, 0])
            bucket[0] += 1
            bucket[1] += entry.size_bytes
        return {name: CategorySummary(count, size) for name, (count, size) in counts.items()}

    def for_categories(self, categories: Iterable[str]) -> list[FileEntry]:
        """Files belonging to ``categories``, keeping scan order."""
        wanted = set(categories)
        return [f for f in self.files if f.category in wanted]
