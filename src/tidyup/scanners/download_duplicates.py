"""Scanner for duplicate files in the user's document directories."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tidyup.models.scan_result import FileEntry, ScanResult
from tidyup.models.scanner import DirectoryScanner, ScanContext
from tidyup.utils import sha256, xdg_user_dir

log = logging.getLogger(__name__)

_MIN_SIZE = 1024  # smaller files are not worth comparing


class DuplicateFilesScanner(DirectoryScanner):
    """Finds files with identical content and offers every copy but the newest."""

    id = "download_duplicates"
    name = "Duplicate Files"
    description = (
        "Files with identical content in Downloads, Documents and Desktop. "
        "The most recently modified copy is always kept."
    )
    category = "duplicates"
    sort_order = 40

    @property
    def _roots(self) -> tuple[Path, ...]:
        return (
            xdg_user_dir("DOWNLOAD", "Downloads"),
            xdg_user_dir("DOCUMENTS", "Documents"),
            xdg_user_dir("DESKTOP", "Desktop"),
        )

    def scan(self, context: ScanContext) -> ScanResult:
        # Group by size first; only same-size files need hashing.
        by_size: dict[int, list[tuple[Path, os.stat_result]]] = {}
        seen: set[Path] = set()
        for root in self._roots:
            if not root.is_dir():
                continue
            for path, st in self._walk(root, context):
                if path in seen or st.st_size < _MIN_SIZE:
                    continue
                seen.add(path)
                by_size.setdefault(st.st_size, []).append((path, st))

        result = ScanResult()
        for size, candidates in sorted(by_size.items()):
            if len(candidates) < 2:
                continue
            if context.cancelled:
                break

            by_hash: dict[str, list[tuple[Path, os.stat_result]]] = {}
            for path, st in candidates:
                try:
                    by_hash.setdefault(sha256(path), []).append((path, st))
                except OSError:
                    log.debug("Cannot hash: %s", path)

            for digest, copies in by_hash.items():
                if len(copies) < 2:
                    continue
                copies.sort(key=lambda c: (-c[1].st_mtime, str(c[0])))
                kept = copies[0][0]
                for path, st in copies[1:]:
                    if context.is_too_new(st.st_mtime):
                        continue
                    entry = FileEntry(
                        path=path,
                        size_bytes=size,
                        mtime=st.st_mtime,
                        category=self.category,
                        reason=f"Duplicate of {kept}",
                        digest=digest,
                    )
                    result.files.append(entry)
                    context.found(entry)

        return result
