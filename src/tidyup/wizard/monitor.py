"""Aggregates scan progress events into metrics for the scanning view."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from tidyup.core.progress import TIMEOUT, ScanFinished, ScanProgress, Subscription

log = logging.getLogger(__name__)

DEFAULT_TARGET_COUNT = 5000


@dataclass(slots=True)
class CategoryProgress:
    """Latest totals reported for one category."""

    name: str
    count: int = 0
    size_bytes: int = 0
    done: bool = False
    folder_hits: Counter[str] = field(default_factory=Counter)


class ProgressMonitor:
    """Consumes a scan subscription and derives display metrics from it."""

    def __init__(
        self,
        subscription: Subscription,
        target_count: int = DEFAULT_TARGET_COUNT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._subscription = subscription
        self._target = max(1, target_count)
        self._clock = clock
        self._started = clock()
        self._finished_at: float | None = None
        self._percent = 0
        self.categories: dict[str, CategoryProgress] = {}
        self.current_path: Path | None = None
        self.finished: ScanFinished | None = None

    def poll(self, timeout: float = 0.1) -> ScanProgress | ScanFinished | object:
        """Fetch and apply the next event, or return ``TIMEOUT``."""
        if self.finished is not None:
            return TIMEOUT
        event = self._subscription.poll(timeout)
        if event is TIMEOUT:
            return TIMEOUT
        if isinstance(event, ScanFinished):
            self.complete(event)
        elif isinstance(event, ScanProgress):
            self.apply(event)
        else:
            log.debug("Ignoring unexpected event on scan subscription: %r", event)
        return event

    def apply(self, event: ScanProgress) -> None:
        progress = self.categories.get(event.category)
        if progress is None:
            progress = self.categories[event.category] = CategoryProgress(event.category)
        progress.count = event.files_found
        progress.size_bytes = event.total_size
        if event.current_path is not None:
            self.current_path = event.current_path
            progress.folder_hits[str(event.current_path.parent)] += 1
        else:
            # Scanners send a final totals event without a path
            progress.done = True
        self._percent = max(self._percent, min(100, self.total_files * 100 // self._target))

    def complete(self, finished: ScanFinished) -> None:
        """Record the completion event and end the subscription."""
        self.finished = finished
        self._finished_at = self._clock()
        self._percent = 100
        for progress in self.categories.values():
            progress.done = True
        self._subscription.close()
        if finished.error is not None:
            log.warning("Scan finished with errors: %s", finished.error)

    @property
    def error(self) -> Exception | None:
        return self.finished.error if self.finished else None

    @property
    def total_files(self) -> int:
        return sum(p.count for p in self.categories.values())

    @property
    def total_size(self) -> int:
        return sum(p.size_bytes for p in self.categories.values())

    @property
    def elapsed(self) -> float:
        end = self._finished_at if self._finished_at is not None else self._clock()
        return max(0.0, end - self._started)

    @property
    def throughput(self) -> tuple[float, float]:
        """Files per second and bytes per second since the scan started."""
        elapsed = self.elapsed
        if elapsed <= 0:
            return 0.0, 0.0
        return self.total_files / elapsed, self.total_size / elapsed

    @property
    def percent_complete(self) -> int:
        """Rough progress estimate; never decreases and never exceeds 100."""
        return self._percent

    def hot_folders(self, limit: int = 3) -> list[tuple[str, int]]:
        """Directories with the most discovery activity, busiest first."""
        totals: Counter[str] = Counter()
        for progress in self.categories.values():
            totals.update(progress.folder_hits)
        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]
