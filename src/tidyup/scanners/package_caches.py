"""Scanner for package manager download caches."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tidyup.models.scanner import DirectoryScanner
from tidyup.utils import xdg_cache_home

log = logging.getLogger(__name__)

_SYSTEM_CACHES = (
    Path("/var/cache/apt/archives"),
    Path("/var/cache/pacman/pkg"),
    Path("/var/cache/dnf"),
    Path("/var/cache/yum"),
)

_SKIP_NAMES = frozenset({"lock", "lockfile"})


def _user_caches() -> tuple[Path, ...]:
    home = Path.home()
    cache = xdg_cache_home()
    return (
        cache / "pip",
        cache / "yarn",
        cache / "go-build",
        cache / "composer",
        home / ".npm" / "_cacache",
        home / ".yarn" / "cache",
        home / ".pnpm-store",
        home / ".cargo" / "registry" / "cache",
        home / ".gradle" / "caches",
        home / ".m2" / "repository",
        home / ".gem" / "cache",
    )


class PackageCacheScanner(DirectoryScanner):
    """Finds downloaded packages kept by system and language package managers."""

    id = "package_caches"
    name = "Package Manager Caches"
    description = (
        "Downloaded archives kept by apt, pacman, dnf, pip, npm, yarn, cargo, "
        "Gradle and Maven. They are fetched again when needed, which can be slow."
    )
    category = "package_managers"
    sort_order = 60

    @property
    def _roots(self) -> tuple[Path, ...]:
        return _user_caches() + _SYSTEM_CACHES

    @property
    def _reason(self) -> str:
        return "Package manager cache"

    def _accept(self, path: Path, st: os.stat_result) -> bool:
        return path.name not in _SKIP_NAMES
