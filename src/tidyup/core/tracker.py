"""Tracks freed space across sessions."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from tidyup.models.clean_result import CleanupReport
from tidyup.storage import load_history, save_history

log = logging.getLogger(__name__)

PERIODS = ("today", "week", "month", "all")
_PERIOD_DAYS = {"today": 0, "week": 7, "month": 30}


class Tracker:
    """Collects cleanup reports and saves them to history as one session.

    Reports accumulate in memory until :meth:`save_session`; statistics
    are always computed from the persisted history.
    """

    def __init__(self, history_path: Path | None = None) -> None:
        self._history_path = history_path
        self._pending: list[CleanupReport] = []

    @property
    def session_bytes_freed(self) -> int:
        return sum(r.deleted_size for r in self._pending)

    @property
    def session_files_removed(self) -> int:
        return sum(r.deleted_count for r in self._pending)

    def record(self, report: CleanupReport) -> None:
        """Add a report to the current session. Dry runs free nothing and are skipped."""
        if report.was_dry_run:
            log.debug("Not recording dry run")
            return
        self._pending.append(report)

    def _sessions(self) -> list[dict[str, Any]]:
        return load_history(self._history_path)["sessions"]

    def get_last_clean_time(self) -> str | None:
        """ISO timestamp of the newest saved session, or None."""
        sessions = self._sessions()
        return sessions[-1].get("timestamp") if sessions else None

    def save_session(self) -> None:
        if not self._pending:
            return

        freed: Counter[str] = Counter()
        for report in self._pending:
            freed.update(report.freed_by_category)
        session = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "files_removed": self.session_files_removed,
            "errors": sum(len(r.error_records) for r in self._pending),
            "details": [{"category": name, "bytes_freed": size} for name, size in freed.items()],
        }

        history = load_history(self._history_path)
        history["sessions"].append(session)
        save_history(history, self._history_path)
        log.info("Saved session: %d files, %d bytes freed", session["files_removed"], sum(freed.values()))
        self._pending.clear()

    def get_stats(self, period: str = "all") -> dict[str, Any]:
        """Aggregate history for ``period``, one of :data:`PERIODS`.

        ``lifetime_bytes_freed`` always covers the whole history.
        """
        every = self._sessions()
        cutoff = _cutoff(period)
        sessions = every if cutoff is None else [s for s in every if _started(s) >= cutoff]

        per_category: Counter[str] = Counter()
        for session in sessions:
            for detail in session.get("details", []):
                per_category[detail["category"]] += detail.get("bytes_freed", 0)

        return {
            "period": period,
            "bytes_freed": sum(per_category.values()),
            "files_removed": sum(s.get("files_removed", 0) for s in sessions),
            "errors": sum(s.get("errors", 0) for s in sessions),
            "session_count": len(sessions),
            "lifetime_bytes_freed": sum(_freed(s) for s in every),
            "per_category": dict(per_category),
        }


def _freed(session: dict[str, Any]) -> int:
    return sum(d.get("bytes_freed", 0) for d in session.get("details", []))


def _started(session: dict[str, Any]) -> datetime:
    return datetime.fromisoformat(session["timestamp"])


def _cutoff(period: str) -> datetime | None:
    """Start of the window for ``period`` in UTC, or None for all time."""
    days = _PERIOD_DAYS.get(period)
    if days is None:
        return None
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return today - timedelta(days=days)
