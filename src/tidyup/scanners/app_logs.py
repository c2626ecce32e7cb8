"""Scanner for old and rotated log files."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from tidyup.models.scanner import DirectoryScanner, ScanContext
from tidyup.utils import xdg_data_home, xdg_state_home

log = logging.getLogger(__name__)

_SYSTEM_LOG_DIR = Path("/var/log")

# Live system logs that rotation tooling expects to exist
_SKIP_NAMES = frozenset({
    "syslog", "messages", "kern.log", "auth.log",
    "wtmp", "btmp", "lastlog", "faillog",
    "boot.log", "dpkg.log", "Xorg.0.log",
})

_ROTATED = re.compile(r"^(.+\.log|syslog|messages|daemon|debug|user)(\.\d+)?\.(\d+|gz|xz|bz2|zst)$")


def is_log_name(name: str) -> bool:
    """Whether a filename looks like a log or a rotated log (``app.log.2.gz``)."""
    if name in _SKIP_NAMES:
        return False
    return name.endswith(".log") or bool(_ROTATED.match(name))


class AppLogsScanner(DirectoryScanner):
    """Finds log files not modified within the logs age threshold."""

    id = "app_logs"
    name = "Old Logs"
    description = (
        "Log files and rotated logs in /var/log, ~/.local/state and "
        "~/.local/share/logs that have not been written to recently."
    )
    category = "logs"
    sort_order = 30

    @property
    def _roots(self) -> tuple[Path, ...]:
        return (_SYSTEM_LOG_DIR, xdg_state_home(), xdg_data_home() / "logs")

    @property
    def _reason(self) -> str:
        return "Old log file"

    def _min_age_for(self, context: ScanContext) -> int:
        return context.config.age_threshold("logs")

    def _accept(self, path: Path, st: os.stat_result) -> bool:
        if xdg_state_home() / "tidyup" in path.parents:
            return False
        return is_log_name(path.name)
