"""Category picker shown between the scan and the file browser."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from tidyup.models.scan_result import CategorySummary

log = logging.getLogger(__name__)


class Safety(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    RISKY = "risky"


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    safety: Safety
    description: str
    recommended: bool


CATEGORY_ORDER = ("cache", "temp", "logs", "duplicates", "downloads", "package_managers")

CATEGORY_INFO = {
    "cache": CategoryInfo(Safety.SAFE, "Application caches, rebuilt automatically when needed", True),
    "temp": CategoryInfo(Safety.SAFE, "Temporary files left behind by programs", True),
    "logs": CategoryInfo(Safety.SAFE, "Old and rotated log files", True),
    "duplicates": CategoryInfo(Safety.CAUTION, "Extra copies of identical files, the newest copy is kept", False),
    "downloads": CategoryInfo(Safety.RISKY, "Files in Downloads you have not touched for months", False),
    "package_managers": CategoryInfo(
        Safety.CAUTION, "Downloaded packages, fetched again on the next install", False
    ),
}

_UNKNOWN = CategoryInfo(Safety.CAUTION, "Files found by an external scanner", False)


def category_info(name: str) -> CategoryInfo:
    return CATEGORY_INFO.get(name, _UNKNOWN)


def category_label(name: str) -> str:
    return name.replace("_", " ").title()


@dataclass(slots=True)
class CategoryChoice:
    name: str
    count: int
    size_bytes: int
    selected: bool

    @property
    def info(self) -> CategoryInfo:
        return category_info(self.name)

    @property
    def label(self) -> str:
        return category_label(self.name)


class CategorySelection:
    """Checklist of scanned categories with safety-based defaults."""

    def __init__(self, summary: dict[str, CategorySummary]) -> None:
        known = [name for name in CATEGORY_ORDER if name in summary]
        extra = sorted(name for name in summary if name not in CATEGORY_ORDER)
        self.choices = [
            CategoryChoice(
                name=name,
                count=summary[name].count,
                size_bytes=summary[name].size_bytes,
                selected=category_info(name).recommended,
            )
            for name in known + extra
            if summary[name].count > 0
        ]
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.choices)

    def move_up(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def move_down(self) -> None:
        self.cursor = min(max(len(self.choices) - 1, 0), self.cursor + 1)

    def toggle(self, index: int | None = None) -> None:
        index = self.cursor if index is None else index
        if 0 <= index < len(self.choices):
            choice = self.choices[index]
            choice.selected = not choice.selected

    def select_all(self) -> None:
        for choice in self.choices:
            choice.selected = True

    def select_none(self) -> None:
        for choice in self.choices:
            choice.selected = False

    def chosen(self) -> list[str]:
        return [c.name for c in self.choices if c.selected]

    @property
    def chosen_count(self) -> int:
        return sum(c.count for c in self.choices if c.selected)

    @property
    def chosen_size(self) -> int:
        return sum(c.size_bytes for c in self.choices if c.selected)
