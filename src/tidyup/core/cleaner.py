"""Deletion of confirmed files with safety checks and error categorization."""

from __future__ import annotations

import errno
import logging
import shutil
import threading
import time
from pathlib import Path
from typing import Callable, Sequence

from tidyup.core.progress import CleanProgress
from tidyup.models.clean_result import CleanResult, DeletionError, ErrorReason
from tidyup.models.scan_result import FileEntry
from tidyup.settings import Config

log = logging.getLogger(__name__)

CleanProgressCallback = Callable[[CleanProgress], None]

_RETRY_DELAYS = (0.1, 0.5, 1.0)

_ERRNO_REASONS = {
    errno.EACCES: ErrorReason.PERMISSION_DENIED,
    errno.EPERM: ErrorReason.PERMISSION_DENIED,
    errno.EBUSY: ErrorReason.FILE_IN_USE,
    errno.ETXTBSY: ErrorReason.FILE_IN_USE,
    errno.ENOENT: ErrorReason.NOT_FOUND,
    errno.EISDIR: ErrorReason.IS_DIRECTORY,
    errno.EINVAL: ErrorReason.INVALID_PATH,
    errno.ENAMETOOLONG: ErrorReason.INVALID_PATH,
}


def categorize_error(path: Path, exc: OSError) -> DeletionError:
    """Map an OSError raised while deleting ``path`` to a DeletionError."""
    reason = _ERRNO_REASONS.get(exc.errno, ErrorReason.UNKNOWN)
    return DeletionError(
        path=path,
        reason=reason,
        message=exc.strerror or str(exc),
        retryable=reason is ErrorReason.FILE_IN_USE,
        needs_root=reason is ErrorReason.PERMISSION_DENIED,
    )


class Cleaner:
    """Deletes file entries one by one, never raising for per-file failures."""

    def __init__(self, config: Config, sleep: Callable[[float], None] = time.sleep) -> None:
        self.config = config
        self._sleep = sleep

    def clean(
        self,
        files: Sequence[FileEntry],
        on_progress: CleanProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CleanResult:
        """Delete ``files`` and report what happened.

        Args:
            files: Entries to delete, in the order they should be processed.
            on_progress: Optional callback fired after each file.
            cancel: When set, the remaining files are skipped.

        Returns:
            A CleanResult; failures are recorded in ``errors``.
        """
        result = CleanResult(dry_run=self.config.dry_run)
        total = len(files)
        min_age = self.config.min_file_age_hours * 3600
        now = time.time()

        for processed, entry in enumerate(files, 1):
            if cancel is not None and cancel.is_set():
                log.info("Cleanup cancelled, skipping %d remaining files", total - processed + 1)
                result.skipped_files.extend(f.path for f in files[processed - 1:])
                break

            self._clean_one(entry, result, now, min_age)

            if on_progress:
                on_progress(
                    CleanProgress(
                        current_path=entry.path,
                        processed=processed,
                        total=total,
                        deleted_size=result.deleted_size,
                    )
                )

        log.info(
            "Cleaned %d files (%d bytes), skipped %d, %d errors%s",
            len(result.deleted_files),
            result.deleted_size,
            len(result.skipped_files),
            len(result.errors),
            " [dry run]" if result.dry_run else "",
        )
        return result

    def _clean_one(self, entry: FileEntry, result: CleanResult, now: float, min_age: float) -> None:
        path = entry.path

        if self.config.is_protected(path):
            log.warning("Refusing to delete protected path: %s", path)
            result.skipped_files.append(path)
            result.errors.append(DeletionError(path, ErrorReason.PROTECTED))
            return

        try:
            st = path.lstat()
        except FileNotFoundError:
            log.debug("Already gone: %s", path)
            result.skipped_files.append(path)
            return
        except OSError as exc:
            result.skipped_files.append(path)
            result.errors.append(categorize_error(path, exc))
            return

        if path.is_symlink():
            result.skipped_files.append(path)
            result.errors.append(
                DeletionError(path, ErrorReason.INVALID_PATH, message="Refusing to follow symlink")
            )
            return

        if min_age and now - st.st_mtime < min_age:
            log.debug("Too new, skipping: %s", path)
            result.skipped_files.append(path)
            return

        if self.config.dry_run:
            result.deleted_files.append(path)
            result.deleted_size += entry.size_bytes
            return

        error = self._remove(path)
        if error is None:
            result.deleted_files.append(path)
            result.deleted_size += entry.size_bytes
        else:
            result.skipped_files.append(path)
            result.errors.append(error)

    def _remove(self, path: Path) -> DeletionError | None:
        """Remove a file or directory, retrying transient failures."""
        error: DeletionError | None = None
        for attempt, delay in enumerate((0.0, *_RETRY_DELAYS)):
            if delay:
                self._sleep(delay)
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                return None
            except OSError as exc:
                error = categorize_error(path, exc)
                if not error.retryable:
                    break
                log.debug("Retrying %s after attempt %d: %s", path, attempt + 1, exc)
        log.debug("Failed to delete %s: %s", path, error)
        return error
