"""Sortable, filterable multi-select file list.

The browser keeps three things apart:

* the *canonical* list, fixed for the whole browsing session;
* the *projection*, the sorted-then-filtered view the user sees, always
  recomputed from the canonical list and never patched in place;
* the *selection*, a set of canonical indices.

Every operation that takes a row number takes a projection index and
resolves it to a canonical index before touching the selection, so the
selection survives any number of sort and filter changes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from tidyup.models.scan_result import FileEntry
from tidyup.wizard.rules import InvalidRuleError, RuleKind, SelectionRule, parse_rule

log = logging.getLogger(__name__)

RESERVED_LINES = 10  # header, filter line, footer and help rows
MIN_PAGE_SIZE = 5


class SortField(str, Enum):
    NAME = "name"
    SIZE = "size"
    MTIME = "modified"
    CATEGORY = "category"


SORT_CYCLE = (SortField.NAME, SortField.SIZE, SortField.MTIME, SortField.CATEGORY)

_SORT_KEYS: dict[SortField, Callable[[FileEntry], object]] = {
    SortField.NAME: lambda e: e.name.lower(),
    SortField.SIZE: lambda e: e.size_bytes,
    SortField.MTIME: lambda e: e.mtime,
    SortField.CATEGORY: lambda e: e.category,
}


def fuzzy_match(text: str, pattern: str) -> bool:
    """Case-insensitive ordered-subsequence match of ``pattern`` in ``text``."""
    if not pattern:
        return True
    chars = iter(text.lower())
    return all(ch in chars for ch in pattern.lower())


def page_size_for(viewport_height: int) -> int:
    return max(MIN_PAGE_SIZE, viewport_height - RESERVED_LINES)


@dataclass(frozen=True, slots=True)
class Row:
    """One visible line of the browser."""

    index: int
    entry: FileEntry
    selected: bool
    is_cursor: bool
    in_visual: bool


@dataclass(frozen=True, slots=True)
class RuleOutcome:
    """Result of applying bulk-menu input: how many were added, or why nothing was."""

    selected: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SelectionBrowser:
    """Owns the canonical list, its projection and the selection set."""

    def __init__(
        self,
        files: Sequence[FileEntry],
        sort_field: SortField = SortField.SIZE,
        descending: bool = True,
        viewport_height: int = 24,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._canonical: tuple[FileEntry, ...] = tuple(files)
        self._selected: set[int] = set()
        self._projection: list[int] = []
        self._clock = clock
        self._visual_anchor: int | None = None

        self.sort_field = sort_field
        self.descending = descending
        self.filter_text = ""
        self.cursor = 0
        self.offset = 0
        self.page_size = page_size_for(viewport_height)

        self._recompute()

    # ── projection ─────────────────────────────────────────────────────

    @property
    def canonical(self) -> tuple[FileEntry, ...]:
        return self._canonical

    @property
    def projection(self) -> list[FileEntry]:
        return [self._canonical[i] for i in self._projection]

    def __len__(self) -> int:
        return len(self._projection)

    def set_sort(self, field: SortField, descending: bool = False) -> None:
        """Stable sort of the canonical list by ``field``."""
        self.sort_field = SortField(field)
        self.descending = descending
        self._recompute()

    def cycle_sort(self) -> SortField:
        """Switch to the next sort field, keeping the direction."""
        position = SORT_CYCLE.index(self.sort_field)
        self.set_sort(SORT_CYCLE[(position + 1) % len(SORT_CYCLE)], self.descending)
        return self.sort_field

    def reverse_sort(self) -> None:
        self.set_sort(self.sort_field, not self.descending)

    def set_filter(self, text: str) -> None:
        """Keep only entries whose base filename fuzzy-matches ``text``."""
        self.filter_text = text
        self._recompute()

    def _recompute(self) -> None:
        current = self._projection[self.cursor] if self._projection else None

        key = _SORT_KEYS[self.sort_field]
        canonical = self._canonical
        # sorted() is stable for reverse=True as well, so ties keep canonical order
        order = sorted(range(len(canonical)), key=lambda i: key(canonical[i]), reverse=self.descending)
        if self.filter_text:
            order = [i for i in order if fuzzy_match(canonical[i].name, self.filter_text)]
        self._projection = order
        self._visual_anchor = None

        if current is not None and current in order:
            self.cursor = order.index(current)
        else:
            self.cursor = min(self.cursor, max(len(order) - 1, 0))
        self._scroll()

    def projection_index_to_canonical(self, index: int) -> int:
        """Canonical position of the entry shown at projection row ``index``.

        Raises:
            IndexError: ``index`` is outside the projection.
        """
        if not 0 <= index < len(self._projection):
            raise IndexError(f"projection index {index} out of range")
        return self._projection[index]

    # ── selection ──────────────────────────────────────────────────────

    def is_selected(self, index: int) -> bool:
        try:
            return self.projection_index_to_canonical(index) in self._selected
        except IndexError:
            return False

    @property
    def selected_indices(self) -> frozenset[int]:
        return frozenset(self._selected)

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def selected_size(self) -> int:
        return sum(self._canonical[i].size_bytes for i in self._selected)

    def selected_entries(self) -> list[FileEntry]:
        """Selected entries in canonical order."""
        return [self._canonical[i] for i in sorted(self._selected)]

    def toggle(self, index: int | None = None) -> bool:
        """Flip the selection of one projection row (the cursor row by default)."""
        if index is None:
            index = self.cursor
        try:
            canonical = self.projection_index_to_canonical(index)
        except IndexError:
            return False
        if canonical in self._selected:
            self._selected.remove(canonical)
        else:
            self._selected.add(canonical)
        return True

    def toggle_range(self, start: int, end: int) -> int:
        """Select an inclusive range, or deselect it if it is fully selected.

        Returns the number of rows in the (clipped) range.
        """
        low, high = sorted((start, end))
        low = max(low, 0)
        high = min(high, len(self._projection) - 1)
        if low > high:
            return 0
        indices = self._projection[low:high + 1]
        if all(i in self._selected for i in indices):
            self._selected.difference_update(indices)
        else:
            self._selected.update(indices)
        return len(indices)

    def select_by_rule(self, rule: SelectionRule) -> int:
        """Add every visible entry matching ``rule``; returns how many were new."""
        now = self._clock()
        added = 0
        for i in self._projection:
            if i not in self._selected and rule.matches(self._canonical[i], now):
                self._selected.add(i)
                added += 1
        log.debug("Rule %r selected %d new entries", rule, added)
        return added

    def select_matching(self, kind: RuleKind | str, text: str) -> RuleOutcome:
        """Parse bulk-menu input and apply it; malformed input selects nothing."""
        try:
            rule = parse_rule(kind, text)
        except InvalidRuleError as exc:
            return RuleOutcome(error=str(exc))
        return RuleOutcome(selected=self.select_by_rule(rule))

    def invert_visible(self) -> None:
        self._selected.symmetric_difference_update(self._projection)

    def select_all_visible(self) -> None:
        self._selected.update(self._projection)

    def deselect_all_visible(self) -> None:
        self._selected.difference_update(self._projection)

    def clear_all(self) -> None:
        self._selected.clear()

    # ── visual mode ────────────────────────────────────────────────────

    @property
    def visual_active(self) -> bool:
        return self._visual_anchor is not None

    @property
    def visual_range(self) -> tuple[int, int] | None:
        if self._visual_anchor is None:
            return None
        return min(self._visual_anchor, self.cursor), max(self._visual_anchor, self.cursor)

    def start_visual(self) -> None:
        if self._projection:
            self._visual_anchor = self.cursor

    def commit_visual(self) -> int:
        """Toggle the range between the visual anchor and the cursor."""
        selection = self.visual_range
        self._visual_anchor = None
        if selection is None:
            return 0
        return self.toggle_range(*selection)

    def cancel_visual(self) -> None:
        self._visual_anchor = None

    # ── navigation ─────────────────────────────────────────────────────

    def move_up(self, steps: int = 1) -> None:
        self._move_to(self.cursor - steps)

    def move_down(self, steps: int = 1) -> None:
        self._move_to(self.cursor + steps)

    def move_top(self) -> None:
        self._move_to(0)

    def move_bottom(self) -> None:
        self._move_to(len(self._projection) - 1)

    def page_up(self) -> None:
        self._move_to(self.cursor - self.page_size)

    def page_down(self) -> None:
        self._move_to(self.cursor + self.page_size)

    def _move_to(self, position: int) -> None:
        self.cursor = min(max(position, 0), max(len(self._projection) - 1, 0))
        self._scroll()

    def _scroll(self) -> None:
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + self.page_size:
            self.offset = self.cursor - self.page_size + 1
        self.offset = max(0, min(self.offset, max(len(self._projection) - self.page_size, 0)))

    def page(self, viewport_height: int | None = None) -> list[Row]:
        """Rows visible in the current window.

        Passing ``viewport_height`` resizes the window first; the cursor
        always stays inside ``[offset, offset + page_size)``.
        """
        if viewport_height is not None:
            self.page_size = page_size_for(viewport_height)
            self._scroll()

        visual = self.visual_range
        rows = []
        for index in range(self.offset, min(self.offset + self.page_size, len(self._projection))):
            canonical = self._projection[index]
            rows.append(
                Row(
                    index=index,
                    entry=self._canonical[canonical],
                    selected=canonical in self._selected,
                    is_cursor=index == self.cursor,
                    in_visual=visual is not None and visual[0] <= index <= visual[1],
                )
            )
        return rows
