"""Scanner for files left in the Downloads directory."""

from __future__ import annotations

import logging
from pathlib import Path

from tidyup.models.scanner import DirectoryScanner, ScanContext
from tidyup.utils import xdg_user_dir

log = logging.getLogger(__name__)


class OldDownloadsScanner(DirectoryScanner):
    """Finds files in ~/Downloads older than the downloads threshold."""

    id = "old_downloads"
    name = "Old Downloads"
    description = "Files in the Downloads directory that have not been touched for months."
    category = "downloads"
    sort_order = 50

    @property
    def _roots(self) -> tuple[Path, ...]:
        return (xdg_user_dir("DOWNLOAD", "Downloads"),)

    @property
    def _reason(self) -> str:
        return "Old download"

    def _min_age_for(self, context: ScanContext) -> int:
        return context.config.age_threshold("downloads")
