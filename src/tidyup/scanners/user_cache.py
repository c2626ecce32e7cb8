"""Scanner for stale files in ~/.cache."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tidyup.models.scanner import DirectoryScanner
from tidyup.utils import xdg_cache_home

log = logging.getLogger(__name__)

# Directories commonly used by active applications that should not be cleaned
_EXCLUDE_DIRS = {
    "fontconfig",
    "icon-cache.kcache",
    "gstreamer-1.0",
    "babl",
    "gegl-0.4",
    "mesa_shader_cache",
    "nvidia",
    "tidyup",
}

# Handled by the package cache scanner
_PACKAGE_DIRS = {
    "pip",
    "yarn",
    "npm",
    "pnpm",
    "go-build",
    "composer",
    "cargo",
}


class UserCacheScanner(DirectoryScanner):
    """Finds cached files in ~/.cache, skipping caches of live applications."""

    @property
    def id(self) -> str:
        return "user_cache"

    @property
    def name(self) -> str:
        return "User Cache"

    @property
    def description(self) -> str:
        return (
            "Cached files under ~/.cache. Font and shader caches are left alone; "
            "applications regenerate the rest as needed."
        )

    @property
    def category(self) -> str:
        return "cache"

    @property
    def sort_order(self) -> int:
        return 10

    @property
    def _roots(self) -> tuple[Path, ...]:
        return (xdg_cache_home(),)

    def _accept(self, path: Path, st: os.stat_result) -> bool:
        try:
            top = path.relative_to(xdg_cache_home()).parts[0]
        except (ValueError, IndexError):
            return False
        return top not in _EXCLUDE_DIRS and top not in _PACKAGE_DIRS
