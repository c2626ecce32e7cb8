"""Runs a confirmed cleanup and normalizes the deleter's result."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from tidyup.core.cleaner import Cleaner, CleanProgressCallback
from tidyup.core.progress import CleanupFinished, ProgressBus, Subscription
from tidyup.models.clean_result import CleanResult, CleanupReport, DeletionError, ErrorReason
from tidyup.wizard.confirmation import ConfirmationGate

log = logging.getLogger(__name__)


class ConfirmationRequiredError(RuntimeError):
    """Cleanup was requested without a confirmed gate."""


class CleanupRunner:
    """Hands exactly the confirmed files to the cleaner, once."""

    def __init__(self, cleaner: Cleaner, bus: ProgressBus | None = None) -> None:
        self.cleaner = cleaner
        self.bus = bus or ProgressBus()

    def run(
        self,
        gate: ConfirmationGate,
        on_progress: CleanProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CleanupReport:
        """Delete the gate's files and return a normalized report.

        Raises:
            ConfirmationRequiredError: the gate did not resolve to Confirmed.
        """
        if not gate.confirmed:
            raise ConfirmationRequiredError(f"Refusing to clean: confirmation is {gate.decision.value}")

        files = list(gate.files)
        log.info("Cleaning %d confirmed files", len(files))
        try:
            result = self.cleaner.clean(files, on_progress=on_progress, cancel=cancel)
        except Exception as exc:
            log.exception("Cleaner crashed")
            result = CleanResult(
                skipped_files=[f.path for f in files],
                errors=[
                    DeletionError(
                        files[0].path if files else Path(),
                        ErrorReason.UNKNOWN,
                        message=f"Cleaner crashed: {exc}",
                    )
                ],
                dry_run=self.cleaner.config.dry_run,
            )

        deleted = set(result.deleted_files)
        freed: dict[str, int] = {}
        for entry in files:
            if entry.path in deleted:
                deleted.discard(entry.path)
                freed[entry.category] = freed.get(entry.category, 0) + entry.size_bytes

        return CleanupReport(
            deleted_count=len(result.deleted_files),
            deleted_size=result.deleted_size,
            skipped_count=len(result.skipped_files),
            error_records=list(result.errors),
            was_dry_run=result.dry_run,
            freed_by_category=freed,
        )

    def start(
        self,
        gate: ConfirmationGate,
        cancel: threading.Event | None = None,
    ) -> Subscription:
        """Run :meth:`run` on a background thread.

        Per-file progress is published on the bus; the returned
        subscription ends with a single CleanupFinished event.
        """
        if not gate.confirmed:
            raise ConfirmationRequiredError(f"Refusing to clean: confirmation is {gate.decision.value}")

        sub = self.bus.subscribe()

        def _worker() -> None:
            report = self.run(gate, on_progress=self.bus.publish, cancel=cancel)
            sub.finish(CleanupFinished(report))
            self.bus.unsubscribe(sub)

        threading.Thread(target=_worker, name="tidyup-clean", daemon=True).start()
        return sub
