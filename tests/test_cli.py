"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

import tidyup.cli as cli
from tidyup.core.engine import ScanEngine
from tidyup.core.registry import ScannerRegistry

pytestmark = pytest.mark.usefixtures("isolate_storage", "isolate_settings")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cleaners(monkeypatch, fake_cleaner):
    """Cleaners created by the CLI, in creation order."""
    created = []

    def _factory(config):
        cleaner = fake_cleaner(config)
        created.append(cleaner)
        return cleaner

    monkeypatch.setattr(cli, "Cleaner", _factory)
    return created


@pytest.fixture
def scan_finds(monkeypatch, fake_scanner):
    """Make the CLI scan with fake scanners reporting ``files``."""

    def _install(files, failing=(), unavailable=(), unreadable=()):
        def _build(config):
            registry = ScannerRegistry()
            for category in sorted({f.category for f in files}):
                registry.register(
                    fake_scanner(category, category, [f for f in files if f.category == category])
                )
            for scanner_id in failing:
                registry.register(fake_scanner(scanner_id, "logs", fail=True))
            for scanner_id in unavailable:
                registry.register(fake_scanner(scanner_id, "temp", available=False))
            if unreadable:
                registry.register(fake_scanner("walker", "temp", unreadable=unreadable))
            return ScanEngine(registry, config)

        monkeypatch.setattr(cli, "_build_engine", _build)

    return _install


@pytest.fixture
def mixed(entry):
    return [
        entry("cache/a.bin", size=1000, category="cache"),
        entry("tmp/b.tmp", size=500, category="temp"),
        entry("Downloads/c.iso", size=9000, category="downloads"),
    ]


class TestScan:
    def test_json(self, runner, scan_finds, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["scan", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total_count"] == 3
        assert data["total_size"] == 10500
        assert data["categories"]["downloads"] == {"count": 1, "size_bytes": 9000}
        assert data["failed"] == {}

    def test_category_filter(self, runner, scan_finds, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["scan", "--json", "-c", "temp"])
        data = json.loads(result.output)
        assert [f["path"] for f in data["files"]] == ["/data/tmp/b.tmp"]

    def test_text_reports_failures(self, runner, scan_finds, mixed):
        scan_finds(mixed, failing=["app_logs"])
        result = runner.invoke(cli.main, ["scan"])
        assert result.exit_code == 0
        assert "Total reclaimable" in result.output
        assert "app_logs" in result.output
        assert "scan failed" in result.output

    def test_unreadable_folders_reported(self, runner, scan_finds, mixed):
        scan_finds(mixed, unreadable=["/data/locked: Permission denied"])
        result = runner.invoke(cli.main, ["scan"])
        assert result.exit_code == 0
        assert "1 folders could not be read" in result.output

        result = runner.invoke(cli.main, ["scan", "--json"])
        assert json.loads(result.output)["unreadable"] == ["/data/locked: Permission denied"]

    def test_nothing_found(self, runner, scan_finds):
        scan_finds([])
        result = runner.invoke(cli.main, ["scan"])
        assert "Nothing to clean." in result.output


class TestClean:
    def test_default_categories_are_recommended_only(self, runner, scan_finds, cleaners, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["clean"], input="y\n")
        assert result.exit_code == 0, result.output
        assert {e.category for e in cleaners[0].calls[0]} == {"cache", "temp"}
        assert "Freed 1.5 KB from 2 files" in result.output

    def test_declined(self, runner, scan_finds, cleaners, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["clean"], input="n\n")
        assert result.exit_code == 1
        assert "Aborted." in result.output
        assert cleaners == []

    def test_yes_skips_prompt_for_low_risk(self, runner, scan_finds, cleaners, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["clean", "--yes"])
        assert result.exit_code == 0
        assert "Delete these files?" not in result.output
        assert len(cleaners[0].calls) == 1

    def test_nothing_to_clean(self, runner, scan_finds, cleaners, entry):
        scan_finds([entry("Downloads/x.iso", category="downloads")])
        result = runner.invoke(cli.main, ["clean"])
        assert "Nothing to clean." in result.output
        assert cleaners == []

    def test_countdown_not_skipped_by_yes(self, runner, scan_finds, cleaners, entry, monkeypatch):
        sleeps = []
        monkeypatch.setattr(cli.time, "sleep", sleeps.append)
        scan_finds([entry("pip/x.whl", category="package_managers")])

        result = runner.invoke(cli.main, ["clean", "-c", "package_managers", "--yes"], input="y\n")
        assert result.exit_code == 0, result.output
        assert sleeps == [1, 1, 1]
        assert "High-risk cleanup" in result.output
        assert len(cleaners) == 1

    def test_typed_phrase(self, runner, scan_finds, cleaners, entry):
        scan_finds([entry(f"cache/{i}.bin", size=10) for i in range(1001)])
        result = runner.invoke(cli.main, ["clean", "-c", "cache", "--yes"], input="delete\n")
        assert result.exit_code == 0, result.output
        assert len(cleaners[0].calls[0]) == 1001

    def test_typed_phrase_mismatch(self, runner, scan_finds, cleaners, entry):
        scan_finds([entry(f"cache/{i}.bin", size=10) for i in range(1001)])
        result = runner.invoke(cli.main, ["clean", "-c", "cache"], input="DELET\n")
        assert result.exit_code == 1
        assert "did not match" in result.output
        assert cleaners == []

    def test_dry_run_not_recorded(self, runner, scan_finds, cleaners, mixed):
        scan_finds(mixed)
        result = runner.invoke(cli.main, ["clean", "--dry-run", "--yes"])
        assert "Would free" in result.output
        assert "dry run" in result.output
        assert cleaners[0].config.dry_run

        stats = json.loads(runner.invoke(cli.main, ["stats", "--json"]).output)
        assert stats["session_count"] == 0


class TestStats:
    def test_after_clean(self, runner, scan_finds, cleaners, mixed):
        scan_finds(mixed)
        runner.invoke(cli.main, ["clean", "--yes"])

        result = runner.invoke(cli.main, ["stats", "--json"])
        data = json.loads(result.output)
        assert data["session_count"] == 1
        assert data["bytes_freed"] == 1500
        assert data["per_category"] == {"cache": 1000, "temp": 500}

        text = runner.invoke(cli.main, ["stats"]).output
        assert "Last cleanup:   just now" in text

    def test_text(self, runner):
        result = runner.invoke(cli.main, ["stats", "-p", "week"])
        assert result.exit_code == 0
        assert "Statistics (week)" in result.output
        assert "Sessions:       0" in result.output


class TestOtherCommands:
    def test_scanners(self, runner, scan_finds, mixed):
        scan_finds(mixed, unavailable=["old_tmp"])
        result = runner.invoke(cli.main, ["scanners"])
        assert result.exit_code == 0
        assert "cache" in result.output
        assert "disabled for this test" in result.output

    def test_interactive_needs_terminal(self, runner, tmp_path):
        result = runner.invoke(cli.main, ["--log-file", str(tmp_path / "tidyup.log"), "interactive"])
        assert result.exit_code == 2
        assert "needs a terminal" in result.output
