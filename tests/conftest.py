"""Shared test fixtures."""

from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from typing import Sequence

import pytest
from rich.console import RenderableType

import tidyup.storage as storage
from tidyup.core.cleaner import CleanProgressCallback
from tidyup.core.progress import CleanProgress
from tidyup.models.clean_result import CleanResult
from tidyup.models.scan_result import FileEntry, ScanResult
from tidyup.models.scanner import CategoryScanner, ScanContext
from tidyup.settings import Config, Settings

DAY = 86400


class FakeScanner(CategoryScanner):
    """Scanner that reports a fixed list of entries without touching the disk."""

    def __init__(
        self,
        scanner_id: str = "fake",
        category: str = "cache",
        files: Sequence[FileEntry] = (),
        available: bool = True,
        fail: bool = False,
        release: threading.Event | None = None,
        unreadable: Sequence[str] = (),
    ) -> None:
        self._id = scanner_id
        self._unreadable = list(unreadable)
        self._category = category
        self._files = list(files)
        self._available = available
        self._fail = fail
        self._release = release

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return f"Fake Scanner ({self._id})"

    @property
    def description(self) -> str:
        return "A fake scanner for testing"

    @property
    def category(self) -> str:
        return self._category

    @property
    def unavailable_reason(self) -> str | None:
        return None if self._available else "disabled for this test"

    def scan(self, context: ScanContext) -> ScanResult:
        if self._release is not None:
            self._release.wait(5)
        if self._fail:
            raise RuntimeError("scan failed")
        context.errors.extend(self._unreadable)
        result = ScanResult()
        for entry in self._files:
            if context.cancelled:
                break
            result.files.append(entry)
            context.found(entry)
        return result


class FakeCleaner:
    """Cleaner stand-in that records what it was asked to delete."""

    def __init__(self, config: Config | None = None, fail: bool = False) -> None:
        self.config = config or Config()
        self.fail = fail
        self.calls: list[list[FileEntry]] = []

    def clean(
        self,
        files: Sequence[FileEntry],
        on_progress: CleanProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CleanResult:
        self.calls.append(list(files))
        if self.fail:
            raise RuntimeError("disk on fire")
        result = CleanResult(dry_run=self.config.dry_run)
        for processed, entry in enumerate(files, 1):
            result.deleted_files.append(entry.path)
            result.deleted_size += entry.size_bytes
            if on_progress:
                on_progress(CleanProgress(entry.path, processed, len(files), result.deleted_size))
        return result


class FakeTerminal:
    """Terminal stand-in fed from a list of keys."""

    def __init__(self, keys: Sequence[str] = (), size: tuple[int, int] = (100, 30)) -> None:
        self.keys = list(keys)
        self.frames: list[RenderableType] = []
        self.active = False
        self._size = size

    def __enter__(self) -> FakeTerminal:
        self.active = True
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.active = False

    def read_key(self, timeout: float):
        return self.keys.pop(0) if self.keys else None

    def size(self) -> tuple[int, int]:
        return self._size

    def draw(self, screen: RenderableType) -> None:
        self.frames.append(screen)


def make_entry(
    name: str = "file.bin",
    size: int = 1024,
    category: str = "cache",
    age_days: float = 10,
    root: Path = Path("/data"),
) -> FileEntry:
    return FileEntry(
        path=root / name,
        size_bytes=size,
        mtime=time.time() - age_days * DAY,
        category=category,
    )


@pytest.fixture
def isolate_storage(tmp_path, monkeypatch):
    """Redirect storage to a temp directory."""
    history_file = tmp_path / "tidyup_data" / "history.json"
    history_file.parent.mkdir()
    monkeypatch.setattr(storage, "HISTORY_FILE", history_file)
    return history_file


@pytest.fixture
def isolate_settings(tmp_path, monkeypatch):
    """Point the settings singleton at a temp file."""
    settings = Settings(tmp_path / "config" / "settings.json")
    monkeypatch.setattr(Settings, "_instance", settings)
    return settings


@pytest.fixture
def entry():
    """Factory for FileEntry objects."""
    return make_entry


@pytest.fixture
def fake_scanner():
    return FakeScanner


@pytest.fixture
def fake_cleaner():
    return FakeCleaner


@pytest.fixture
def old_file(tmp_path):
    """Factory creating a real file with a given age under tmp_path."""

    def _make(relative: str, size: int = 2048, age_days: float = 10, content: bytes | None = None) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else b"x" * size)
        stamp = time.time() - age_days * DAY
        os.utime(path, (stamp, stamp))
        return path

    return _make


@pytest.fixture
def fake_terminal():
    return FakeTerminal
