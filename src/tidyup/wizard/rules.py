"""Rule-based bulk selection: size, age and glob rules parsed from user text."""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from tidyup.models.scan_result import FileEntry

_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "M": 1024**2,
    "MB": 1024**2,
    "G": 1024**3,
    "GB": 1024**3,
    "T": 1024**4,
    "TB": 1024**4,
}

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")


class InvalidRuleError(ValueError):
    """Bulk selection input that cannot be turned into a rule."""


class RuleKind(str, Enum):
    SIZE = "size"
    AGE = "age"
    GLOB = "glob"


def parse_size(text: str) -> int:
    """Parse a size such as ``100MB``, ``1.5 G`` or ``512`` into bytes."""
    match = _SIZE_RE.match(text)
    if not match:
        raise InvalidRuleError(f"Invalid size: {text.strip() or 'empty'} (try 100MB or 1GB)")
    number, unit = match.groups()
    multiplier = _UNITS.get(unit.upper())
    if multiplier is None:
        raise InvalidRuleError(f"Unknown size unit: {unit} (use B, KB, MB, GB or TB)")
    return int(float(number) * multiplier)


def _validate_glob(pattern: str) -> None:
    if not pattern:
        raise InvalidRuleError("Pattern is empty")
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "[":
            j = i + 1
            if pattern[j:j + 1] == "!":
                j += 1
            if pattern[j:j + 1] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                raise InvalidRuleError(f"Invalid pattern: {pattern} (unterminated '[')")
            i = close
        i += 1


@dataclass(frozen=True, slots=True)
class SizeAtLeast:
    threshold: int

    def matches(self, entry: FileEntry, now: float) -> bool:
        return entry.size_bytes >= self.threshold


@dataclass(frozen=True, slots=True)
class OlderThan:
    days: int

    def matches(self, entry: FileEntry, now: float) -> bool:
        return now - entry.mtime > self.days * 86400


@dataclass(frozen=True, slots=True)
class GlobPattern:
    pattern: str

    def matches(self, entry: FileEntry, now: float) -> bool:
        return fnmatch.fnmatchcase(entry.name, self.pattern)


SelectionRule = Union[SizeAtLeast, OlderThan, GlobPattern]


def parse_rule(kind: RuleKind | str, text: str) -> SelectionRule:
    """Build a rule from raw bulk-menu input.

    Raises:
        InvalidRuleError: the text is not a valid size, day count or glob.
    """
    match RuleKind(kind):
        case RuleKind.SIZE:
            return SizeAtLeast(parse_size(text))
        case RuleKind.AGE:
            raw = text.strip()
            if not raw.isdigit():
                raise InvalidRuleError(f"Invalid number of days: {raw or 'empty'}")
            days = int(raw)
            if days <= 0:
                raise InvalidRuleError("Number of days must be positive")
            return OlderThan(days)
        case RuleKind.GLOB:
            pattern = text.strip()
            _validate_glob(pattern)
            return GlobPattern(pattern)
