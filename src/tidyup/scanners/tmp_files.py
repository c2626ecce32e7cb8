"""Scanner for user-owned temp files."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tidyup.models.scanner import DirectoryScanner, ScanContext

log = logging.getLogger(__name__)

_TMP_DIRS = (Path("/tmp"), Path("/var/tmp"))


class TmpFilesScanner(DirectoryScanner):
    """Finds user-owned files in /tmp and /var/tmp older than the temp threshold."""

    id = "tmp_files"
    name = "Temporary Files"
    description = (
        "User-owned files in /tmp and /var/tmp that have not been modified "
        "for a while. Active applications may still use recent temp files."
    )
    category = "temp"
    sort_order = 20

    @property
    def _roots(self) -> tuple[Path, ...]:
        return _TMP_DIRS

    def _min_age_for(self, context: ScanContext) -> int:
        return context.config.age_threshold("temp")

    def _accept(self, path: Path, st: os.stat_result) -> bool:
        return st.st_uid == os.getuid()
