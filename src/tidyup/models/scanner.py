"""Base scanner interface."""

from __future__ import annotations

import fnmatch
import logging
import os
import stat
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from tidyup.models.scan_result import FileEntry, ScanResult
from tidyup.settings import Config

log = logging.getLogger(__name__)

FoundCallback = Callable[[FileEntry], None]


@dataclass(slots=True)
class ScanContext:
    """Everything a scanner needs from the run that invoked it.

    ``errors`` collects the directories a walk could not read, as
    ``"path: reason"``; the engine copies them into the scanner's result.
    """

    config: Config = field(default_factory=Config)
    cancel: threading.Event = field(default_factory=threading.Event)
    on_found: FoundCallback | None = None
    now: float = field(default_factory=time.time)
    errors: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    def found(self, entry: FileEntry) -> None:
        if self.on_found:
            self.on_found(entry)

    def is_excluded(self, path: Path) -> bool:
        """Whether any configured exclude pattern matches the path or one of its parts."""
        for pattern in self.config.exclude_patterns:
            if fnmatch.fnmatchcase(path.name, pattern) or fnmatch.fnmatchcase(str(path), pattern):
                return True
            if pattern in path.parts:
                return True
        return False

    def is_too_new(self, mtime: float, min_age_days: int = 0) -> bool:
        """Whether a file is younger than the global minimum age or ``min_age_days``."""
        age = self.now - mtime
        if age < self.config.min_file_age_hours * 3600:
            return True
        return min_age_days > 0 and age < min_age_days * 86400


class CategoryScanner(ABC):
    """Base class for all scanners.

    A scanner finds candidate files of a single category. It must never
    delete anything; deletion is done by the cleaner after confirmation.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier, e.g. 'user_cache'."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name, e.g. 'User Cache'."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What this scanner looks for."""

    @property
    @abstractmethod
    def category(self) -> str:
        """Category of every entry produced: 'cache', 'temp', 'logs', ..."""

    @property
    def sort_order(self) -> int:
        """Display order (lower = first). Default 50."""
        return 50

    @property
    def unavailable_reason(self) -> str | None:
        """Why this scanner cannot work on this system, or None if supported."""
        return None

    def is_available(self) -> bool:
        """Check if this scanner is applicable on the current system."""
        return self.unavailable_reason is None

    @abstractmethod
    def scan(self, context: ScanContext) -> ScanResult:
        """Scan for candidate files. MUST NOT delete anything."""

    def _entry(self, path: Path, st: os.stat_result, reason: str = "") -> FileEntry:
        return FileEntry(
            path=path,
            size_bytes=st.st_size,
            mtime=st.st_mtime,
            category=self.category,
            reason=reason,
        )


class DirectoryScanner(CategoryScanner, ABC):
    """Base class for scanners that walk one or more directory trees.

    Subclasses define metadata properties and ``_roots``. Every regular
    file under an existing root is a candidate, subject to the context's
    protection, exclusion and age rules and to ``_accept``.
    """

    @property
    @abstractmethod
    def _roots(self) -> tuple[Path, ...]:
        """Directories to walk."""

    @property
    def _min_age_days(self) -> int:
        """Per-category age threshold in days, on top of the global minimum."""
        return 0

    @property
    def _reason(self) -> str:
        return self.name

    @property
    def unavailable_reason(self) -> str | None:
        if not any(root.is_dir() for root in self._roots):
            return f"{self.name}: no directories found"
        return None

    def _accept(self, path: Path, st: os.stat_result) -> bool:
        """Extra per-file filter for subclasses."""
        return True

    def _min_age_for(self, context: ScanContext) -> int:
        return self._min_age_days

    def scan(self, context: ScanContext) -> ScanResult:
        result = ScanResult()
        min_age_days = self._min_age_for(context)
        seen: set[Path] = set()

        for root in self._roots:
            if not root.is_dir() or context.cancelled:
                continue
            for path, st in self._walk(root, context):
                if path in seen:
                    continue
                seen.add(path)
                if context.is_too_new(st.st_mtime, min_age_days) or not self._accept(path, st):
                    continue
                entry = self._entry(path, st, self._reason)
                result.files.append(entry)
                context.found(entry)

        return result

    def _walk(self, root: Path, context: ScanContext) -> Iterator[tuple[Path, os.stat_result]]:
        """Yield (path, stat) for regular files under ``root``.

        Symlinks are never followed, unreadable directories are skipped,
        and protected or excluded paths are pruned.
        """
        stack: list[Path] = [root]
        while stack:
            if context.cancelled:
                return
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as exc:
                log.debug("Cannot read directory: %s", current)
                context.errors.append(f"{current}: {exc.strerror or exc}")
                continue
            for item in sorted(entries, key=lambda e: e.name):
                path = Path(item.path)
                if context.is_excluded(path) or context.config.is_protected(path):
                    continue
                try:
                    st = item.stat(follow_symlinks=False)
                except OSError:
                    log.debug("Cannot access: %s", path)
                    continue
                if stat.S_ISDIR(st.st_mode):
                    stack.append(path)
                elif stat.S_ISREG(st.st_mode):
                    yield path, st
