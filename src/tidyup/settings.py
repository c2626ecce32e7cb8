"""Generic JSON-backed settings store and the typed config built from it."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from tidyup.utils import xdg_config_home, xdg_user_dir

log = logging.getLogger(__name__)

_SETTINGS_DIR = "tidyup"
_SETTINGS_FILE = "settings.json"

DEFAULT_AGE_THRESHOLDS = {"temp": 7, "logs": 30, "downloads": 90}
DEFAULT_EXCLUDE_PATTERNS = ("*.lock", ".git")
DEFAULT_PROTECTED_PATHS = (
    "/bin",
    "/boot",
    "/dev",
    "/etc",
    "/lib",
    "/lib64",
    "/opt",
    "/proc",
    "/run",
    "/sbin",
    "/srv",
    "/sys",
    "/usr",
    "/var/lib",
    "~/.config",
    "~/.ssh",
    "~/.gnupg",
)

# Directories that may be scanned into but never removed themselves
_XDG_USER_DIRS = (
    ("DOCUMENTS", "Documents"),
    ("DESKTOP", "Desktop"),
    ("DOWNLOAD", "Downloads"),
    ("PICTURES", "Pictures"),
    ("MUSIC", "Music"),
    ("VIDEOS", "Videos"),
)


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("age_thresholds.logs")  # reads data["age_thresholds"]["logs"]
        settings.set("age_thresholds.logs", 14)  # writes + saves
    """

    _instance: Settings | None = None

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @classmethod
    def instance(cls) -> Settings:
        """Return the singleton settings instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            log.warning("Ignoring settings file %s: top level is not an object", self._path)

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)


@dataclass(frozen=True, slots=True)
class Config:
    """Resolved, validated configuration for one run."""

    dry_run: bool = False
    min_file_age_hours: float = 1
    age_thresholds: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_AGE_THRESHOLDS))
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    protected_paths: tuple[Path, ...] = field(
        default_factory=lambda: tuple(Path(p).expanduser() for p in DEFAULT_PROTECTED_PATHS)
    )
    target_count: int = 5000
    poll_interval: float = 0.1
    scanner_paths: tuple[Path, ...] = ()

    def age_threshold(self, category: str) -> int:
        """Minimum age in days for files of ``category``; 0 means no threshold."""
        return self.age_thresholds.get(category, 0)

    def is_protected(self, path: Path) -> bool:
        """Whether ``path`` must never be yielded by a scanner or deleted."""
        if path in _root_paths():
            return True
        for protected in self.protected_paths:
            if path == protected or protected in path.parents:
                return True
        return False

    def with_overrides(self, **changes: Any) -> Config:
        return replace(self, **changes)


def _root_paths() -> frozenset[Path]:
    home = Path.home()
    roots = {Path("/"), Path("/home"), Path("/root"), home}
    roots.update(xdg_user_dir(key, fallback) for key, fallback in _XDG_USER_DIRS)
    return frozenset(roots)


def _number(settings: Settings, key: str, default: float, *, integer: bool = False) -> Any:
    value = settings.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        log.warning("Invalid value for '%s': %r, using %r", key, value, default)
        return default
    return int(value) if integer else value


def _string_list(settings: Settings, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = settings.get(key, list(default))
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        log.warning("Invalid value for '%s': %r, using defaults", key, value)
        return default
    return tuple(value)


def load_config(settings: Settings | None = None) -> Config:
    """Build a Config from persisted settings, falling back to defaults."""
    settings = settings or Settings.instance()

    dry_run = settings.get("dry_run", False)
    if not isinstance(dry_run, bool):
        log.warning("Invalid value for 'dry_run': %r, using False", dry_run)
        dry_run = False

    thresholds = dict(DEFAULT_AGE_THRESHOLDS)
    for category, default in DEFAULT_AGE_THRESHOLDS.items():
        thresholds[category] = _number(settings, f"age_thresholds.{category}", default, integer=True)

    protected = _string_list(settings, "protected_paths", DEFAULT_PROTECTED_PATHS)
    scanner_paths = _string_list(settings, "scanners.paths", ())

    return Config(
        dry_run=dry_run,
        min_file_age_hours=_number(settings, "min_file_age_hours", 1),
        age_thresholds=thresholds,
        exclude_patterns=_string_list(settings, "exclude_patterns", DEFAULT_EXCLUDE_PATTERNS),
        protected_paths=tuple(Path(p).expanduser() for p in protected),
        target_count=max(1, _number(settings, "scan.target_count", 5000, integer=True)),
        poll_interval=_number(settings, "scan.poll_interval", 0.1),
        scanner_paths=tuple(Path(p).expanduser() for p in scanner_paths),
    )
