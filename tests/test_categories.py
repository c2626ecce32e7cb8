"""Tests for the category checklist."""

from __future__ import annotations

from tidyup.models.scan_result import CategorySummary
from tidyup.wizard.categories import CategorySelection, Safety, category_info, category_label


def _summary(**counts: int) -> dict[str, CategorySummary]:
    return {name: CategorySummary(count, count * 1000) for name, count in counts.items()}


class TestCategorySelection:
    def test_known_order_then_unknown_alphabetically(self):
        selection = CategorySelection(_summary(zeta=1, downloads=2, cache=3, alpha=4, logs=5))
        assert [c.name for c in selection.choices] == ["cache", "logs", "downloads", "alpha", "zeta"]

    def test_hides_empty_categories(self):
        selection = CategorySelection(_summary(cache=3, temp=0))
        assert [c.name for c in selection.choices] == ["cache"]

    def test_safe_categories_preselected(self):
        selection = CategorySelection(
            _summary(cache=1, temp=1, logs=1, duplicates=1, downloads=1, package_managers=1, custom=1)
        )
        assert selection.chosen() == ["cache", "temp", "logs"]

    def test_toggle_and_totals(self):
        selection = CategorySelection(_summary(cache=3, downloads=2))
        assert selection.chosen_count == 3
        selection.move_down()
        selection.toggle()
        assert selection.chosen() == ["cache", "downloads"]
        assert selection.chosen_count == 5
        assert selection.chosen_size == 5000

    def test_select_all_and_none(self):
        selection = CategorySelection(_summary(cache=1, downloads=1))
        selection.select_all()
        assert len(selection.chosen()) == 2
        selection.select_none()
        assert selection.chosen() == []

    def test_cursor_clamped(self):
        selection = CategorySelection(_summary(cache=1, logs=1))
        selection.move_up()
        assert selection.cursor == 0
        for _ in range(5):
            selection.move_down()
        assert selection.cursor == 1

    def test_empty(self):
        selection = CategorySelection({})
        selection.move_down()
        selection.toggle()
        assert len(selection) == 0
        assert selection.chosen() == []


class TestCategoryInfo:
    def test_downloads_risky(self):
        assert category_info("downloads").safety is Safety.RISKY

    def test_unknown_category_is_caution(self):
        info = category_info("screenshots")
        assert info.safety is Safety.CAUTION
        assert not info.recommended

    def test_label(self):
        assert category_label("package_managers") == "Package Managers"
