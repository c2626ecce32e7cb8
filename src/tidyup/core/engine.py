"""Scan orchestration engine."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from tidyup.core.progress import ProgressBus, ScanFinished, ScanProgress, Subscription
from tidyup.core.registry import ScannerRegistry
from tidyup.models.scan_result import FileEntry, ScanResult
from tidyup.models.scanner import CategoryScanner, ScanContext
from tidyup.settings import Config

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]

REPORT_EVERY = 25  # files between two progress events of one category


class ScanError(Exception):
    """Some scanners failed; the accompanying result is partial."""

    def __init__(self, failed: dict[str, str]) -> None:
        self.failed = failed
        super().__init__("Scan incomplete, failed: " + ", ".join(sorted(failed)))


class _Tally:
    """Thread-safe running totals per category."""

    def __init__(self, on_progress: ProgressCallback | None) -> None:
        self._lock = threading.Lock()
        self._totals: dict[str, list[int]] = {}
        self._on_progress = on_progress

    def found(self, entry: FileEntry) -> None:
        with self._lock:
            bucket = self._totals.setdefault(entry.category, [0, 0])
            bucket[0] += 1
            bucket[1] += entry.size_bytes
            count, size = bucket
        if self._on_progress and count % REPORT_EVERY == 0:
            self._on_progress(ScanProgress(entry.category, count, size, entry.path))

    def flush(self, category: str) -> None:
        with self._lock:
            count, size = self._totals.get(category, [0, 0])
        if self._on_progress:
            self._on_progress(ScanProgress(category, count, size))


class ScanEngine:
    """Runs every available scanner and merges their results."""

    def __init__(
        self,
        registry: ScannerRegistry,
        config: Config | None = None,
        bus: ProgressBus | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or Config()
        self.bus = bus or ProgressBus()

    def scan_all(
        self,
        cancel: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> tuple[ScanResult, ScanError | None]:
        """Scan with all available scanners.

        Uses a small thread pool (4 workers) so directory walks on
        different trees overlap. A scanner that raises is logged and
        reported in the returned ScanError; the others still contribute.

        Args:
            cancel: When set, scanners stop walking as soon as they notice.
            on_progress: Optional callback for per-category running totals.

        Returns:
            The merged result, in scanner display order, and an error
            describing failed scanners (or None).
        """
        cancel = cancel or threading.Event()
        scanners = self.registry.get_available()
        tally = _Tally(on_progress)
        results: dict[str, ScanResult] = {}
        failed: dict[str, str] = {}
        lock = threading.Lock()

        def _scan(scanner: CategoryScanner) -> None:
            context = ScanContext(config=self.config, cancel=cancel, on_found=tally.found)
            try:
                result = scanner.scan(context)
                result.errors.extend(context.errors)
                with lock:
                    results[scanner.id] = result
            except Exception as exc:
                log.exception("Scanner '%s' failed", scanner.id)
                with lock:
                    failed[scanner.id] = str(exc) or type(exc).__name__
            tally.flush(scanner.category)

        if (os.cpu_count() or 1) > 1 and len(scanners) > 1:
            with ThreadPoolExecutor(max_workers=min(4, len(scanners))) as executor:
                for future in [executor.submit(_scan, s) for s in scanners]:
                    future.result()
        else:
            for scanner in scanners:
                _scan(scanner)

        merged = ScanResult()
        for scanner in scanners:
            if scanner.id in results:
                merged.merge(results[scanner.id])

        if cancel.is_set():
            log.info("Scan cancelled after %d files", merged.total_count)
        else:
            log.info("Scan found %d files (%d bytes)", merged.total_count, merged.total_size)

        return merged, (ScanError(failed) if failed else None)

    def start(self, cancel: threading.Event | None = None) -> Subscription:
        """Run :meth:`scan_all` on a background thread.

        Progress is published on the bus; the returned subscription
        ends with a single ScanFinished event.
        """
        sub = self.bus.subscribe()

        def _worker() -> None:
            try:
                result, error = self.scan_all(cancel, on_progress=self.bus.publish)
                finished = ScanFinished(result, error)
            except Exception as exc:
                log.exception("Scan worker crashed")
                finished = ScanFinished(ScanResult(), exc)
            sub.finish(finished)
            self.bus.unsubscribe(sub)

        threading.Thread(target=_worker, name="tidyup-scan", daemon=True).start()
        return sub
