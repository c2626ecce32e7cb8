"""Example external scanner for tidyup.

Shows how to add a category of your own. Copy this directory into
~/.local/share/tidyup/scanners/ (or list its parent under the
``scanners.paths`` setting) and it is picked up on the next run.
"""

from __future__ import annotations

from pathlib import Path

from tidyup.models.scanner import DirectoryScanner
from tidyup.utils import xdg_user_dir


class OldScreenshotsScanner(DirectoryScanner):
    """Screenshots nobody has looked at for half a year."""

    id = "old_screenshots"
    name = "Old Screenshots"
    description = "Screenshots older than 180 days"
    category = "screenshots"
    sort_order = 90

    @property
    def _roots(self) -> tuple[Path, ...]:
        return (xdg_user_dir("PICTURES", "Pictures") / "Screenshots",)

    @property
    def _min_age_days(self) -> int:
        return 180
