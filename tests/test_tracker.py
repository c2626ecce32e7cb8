"""Tests for the tracker module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import tidyup.storage as storage
from tidyup.core.tracker import Tracker
from tidyup.models.clean_result import CleanupReport, DeletionError, ErrorReason

pytestmark = pytest.mark.usefixtures("isolate_storage")


def _report(freed: dict[str, int], files: int = 1, errors: int = 0, dry_run: bool = False) -> CleanupReport:
    return CleanupReport(
        deleted_count=files,
        deleted_size=sum(freed.values()),
        error_records=[DeletionError(path=Path(f"/x/{i}"), reason=ErrorReason.UNKNOWN) for i in range(errors)],
        was_dry_run=dry_run,
        freed_by_category=freed,
    )


class TestTracker:
    def test_session_tracking(self):
        tracker = Tracker()
        tracker.record(_report({"cache": 1024}, files=5))
        tracker.record(_report({"logs": 2048}, files=10))

        assert tracker.session_bytes_freed == 1024 + 2048
        assert tracker.session_files_removed == 15

    def test_dry_run_not_recorded(self, isolate_storage):
        tracker = Tracker()
        tracker.record(_report({"cache": 1024}, dry_run=True))
        tracker.save_session()
        assert tracker.session_bytes_freed == 0
        assert not isolate_storage.exists()

    def test_save_session(self, isolate_storage):
        tracker = Tracker()
        tracker.record(_report({"temp": 5000}, files=3, errors=2))
        tracker.save_session()

        history = json.loads(isolate_storage.read_text())
        assert len(history["sessions"]) == 1
        session = history["sessions"][0]
        assert session["files_removed"] == 3
        assert session["errors"] == 2
        assert session["details"] == [{"category": "temp", "bytes_freed": 5000}]

    def test_multiple_sessions(self, isolate_storage):
        t1 = Tracker()
        t1.record(_report({"cache": 100}))
        t1.save_session()

        t2 = Tracker()
        t2.record(_report({"logs": 200}))
        t2.save_session()

        history = json.loads(isolate_storage.read_text())
        assert len(history["sessions"]) == 2
        assert t2.get_stats("all")["lifetime_bytes_freed"] == 300

    def test_session_reports_cleared_after_save(self, isolate_storage):
        tracker = Tracker()
        tracker.record(_report({"package_managers": 24_000}))
        tracker.save_session()
        tracker.record(_report({"cache": 1_000}))
        tracker.save_session()

        history = json.loads(isolate_storage.read_text())
        assert history["sessions"][1]["details"] == [{"category": "cache", "bytes_freed": 1_000}]

    def test_empty_session_not_saved(self, isolate_storage):
        Tracker().save_session()
        assert not isolate_storage.exists()

    def test_last_clean_time(self):
        tracker = Tracker()
        assert tracker.get_last_clean_time() is None
        tracker.record(_report({"cache": 1}))
        tracker.save_session()
        assert tracker.get_last_clean_time() is not None

    def test_malformed_history_ignored(self, isolate_storage):
        isolate_storage.write_text('{"sessions": "nope"}')
        assert Tracker().get_stats()["session_count"] == 0


class TestTrackerStats:
    def test_per_category_aggregation(self):
        t1 = Tracker()
        t1.record(_report({"cache": 100, "temp": 200}, files=8))
        t1.save_session()

        t2 = Tracker()
        t2.record(_report({"cache": 150}, files=8))
        t2.save_session()

        stats = t2.get_stats("all")
        assert stats["per_category"] == {"cache": 250, "temp": 200}
        assert stats["files_removed"] == 16
        assert stats["session_count"] == 2

    def test_today_includes_fresh_sessions(self):
        tracker = Tracker()
        tracker.record(_report({"cache": 999}, files=7))
        tracker.save_session()

        stats = tracker.get_stats("today")
        assert stats["bytes_freed"] == 999
        assert stats["period"] == "today"

    def test_old_sessions_excluded_from_week(self, isolate_storage):
        isolate_storage.write_text(
            json.dumps(
                {
                    "sessions": [
                        {
                            "timestamp": "2001-01-01T00:00:00+00:00",
                            "files_removed": 1,
                            "errors": 0,
                            "details": [{"category": "cache", "bytes_freed": 10}],
                        }
                    ]
                }
            )
        )
        tracker = Tracker()
        assert tracker.get_stats("week")["bytes_freed"] == 0
        assert tracker.get_stats("all")["bytes_freed"] == 10


class TestHistoryFile:
    def test_version_written(self, isolate_storage):
        tracker = Tracker()
        tracker.record(_report({"cache": 1}))
        tracker.save_session()
        assert json.loads(isolate_storage.read_text())["version"] == storage.HISTORY_VERSION
        assert not isolate_storage.with_name("history.json.tmp").exists()

    def test_oldest_sessions_dropped(self, isolate_storage, monkeypatch):
        monkeypatch.setattr(storage, "MAX_SESSIONS", 2)
        for size in (1, 2, 3):
            tracker = Tracker()
            tracker.record(_report({"cache": size}))
            tracker.save_session()

        sessions = json.loads(isolate_storage.read_text())["sessions"]
        assert [s["details"][0]["bytes_freed"] for s in sessions] == [2, 3]

    def test_corrupt_file_reads_as_empty(self, isolate_storage):
        isolate_storage.write_text("{oops")
        assert storage.load_history() == {"version": storage.HISTORY_VERSION, "sessions": []}

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "elsewhere" / "history.json"
        tracker = Tracker(history_path=path)
        tracker.record(_report({"logs": 42}))
        tracker.save_session()
        assert Tracker(history_path=path).get_stats()["bytes_freed"] == 42
