"""Tests for the interactive wizard's key handling."""

from __future__ import annotations

import time

import pytest

from tidyup.core.engine import ScanEngine
from tidyup.core.registry import ScannerRegistry
from tidyup.tui.app import InteractiveApp
from tidyup.tui.terminal import Paste
from tidyup.tui.views import BUTTONS, InputMode
from tidyup.wizard.confirmation import GateState, RiskTier
from tidyup.wizard.controller import ViewState, WorkflowController
from tidyup.wizard.runner import CleanupRunner
from tidyup.wizard.rules import RuleKind

pytestmark = pytest.mark.usefixtures("isolate_storage")


class Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def make_app(fake_scanner, fake_cleaner, fake_terminal, clock):
    """Build an app over ``files``, with the scan already finished unless ``scanned`` is false."""

    def _make(files, keys=(), scanned=True) -> InteractiveApp:
        registry = ScannerRegistry()
        for category in sorted({f.category for f in files}):
            registry.register(fake_scanner(category, category, [f for f in files if f.category == category]))
        controller = WorkflowController(ScanEngine(registry), CleanupRunner(fake_cleaner()))
        app = InteractiveApp(controller, fake_terminal(keys), clock=clock)
        if scanned:
            controller.start()
            wait_for(controller, ViewState.CATEGORY_SELECTION)
        return app

    return _make


def wait_for(controller: WorkflowController, state: ViewState) -> None:
    deadline = time.monotonic() + 5
    while controller.state is not state:
        assert time.monotonic() < deadline, f"stuck in {controller.state.value}"
        controller.pump(0.05)


def press(app: InteractiveApp, *keys) -> None:
    for key in keys:
        app.handle_key(key)


@pytest.fixture
def small_files(entry):
    return [
        entry("cache/a.bin", size=100, category="cache"),
        entry("cache/b.bin", size=200, category="cache"),
        entry("tmp/c.tmp", size=300, category="temp"),
    ]


@pytest.fixture
def browsing(make_app, small_files):
    app = make_app(small_files)
    press(app, "enter")
    assert app.controller.state is ViewState.FILE_BROWSING
    return app


class TestRun:
    def test_quit_key_ends_loop(self, make_app, small_files):
        app = make_app(small_files, keys=["q"], scanned=False)
        assert app.run() is None
        assert app.controller.quitting
        assert app.terminal.frames
        assert not app.terminal.active

    def test_ctrl_c_quits(self, browsing):
        press(browsing, "ctrl+c")
        assert browsing.controller.quitting


class TestCategories:
    def test_toggle_and_continue(self, make_app, small_files):
        app = make_app(small_files)
        press(app, "space", "enter")
        assert app.controller.state is ViewState.FILE_BROWSING
        assert {e.category for e in app.controller.browser.canonical} == {"temp"}

    def test_nothing_chosen(self, make_app, small_files):
        app = make_app(small_files)
        press(app, "n", "enter")
        assert app.controller.state is ViewState.CATEGORY_SELECTION
        assert app.controller.notice == "Select at least one category."

    def test_help(self, make_app, small_files):
        app = make_app(small_files)
        press(app, "?")
        assert app.controller.state is ViewState.HELP
        press(app, "esc")
        assert app.controller.state is ViewState.CATEGORY_SELECTION


class TestBrowser:
    def test_navigation(self, browsing):
        browser = browsing.controller.browser
        press(browsing, "j", "j")
        assert browser.cursor == 2
        press(browsing, "g", "g")
        assert browser.cursor == 0
        press(browsing, "G")
        assert browser.cursor == 2
        press(browsing, "k")
        assert browser.cursor == 1

    def test_single_g_waits(self, browsing):
        press(browsing, "G", "g")
        assert browsing.controller.browser.cursor == 2
        assert browsing.ui.pending_g

    def test_space_toggles_and_moves(self, browsing):
        browser = browsing.controller.browser
        press(browsing, "space")
        assert browser.selected_count == 1
        assert browser.cursor == 1

    def test_visual_range(self, browsing):
        browser = browsing.controller.browser
        press(browsing, "v", "j", "j", "space")
        assert browser.selected_count == 3
        assert not browser.visual_active

    def test_esc_cancels_visual_first(self, browsing):
        press(browsing, "v", "esc")
        assert not browsing.controller.browser.visual_active
        assert browsing.controller.state is ViewState.FILE_BROWSING
        press(browsing, "esc")
        assert browsing.controller.state is ViewState.CATEGORY_SELECTION

    def test_filter(self, browsing):
        browser = browsing.controller.browser
        press(browsing, "/", "t", "m", "p")
        assert browsing.ui.mode is InputMode.FILTER
        assert [e.name for e in browser.projection] == ["c.tmp"]
        press(browsing, "enter")
        assert browsing.ui.mode is InputMode.NORMAL
        assert browser.filter_text == "tmp"

        press(browsing, "/", "esc")
        assert browser.filter_text == ""
        assert len(browser) == 3

    def test_bulk_size_rule(self, browsing):
        press(browsing, "b", "1")
        assert browsing.ui.mode is InputMode.RULE_INPUT
        assert browsing.ui.rule_kind is RuleKind.SIZE
        press(browsing, "2", "5", "0", "enter")
        assert browsing.controller.browser.selected_count == 1
        assert browsing.ui.message == "Selected 1 more files"
        assert not browsing.ui.message_is_error

    def test_bulk_bad_input(self, browsing):
        press(browsing, "b", "1", Paste("lots"), "enter")
        assert browsing.controller.browser.selected_count == 0
        assert browsing.ui.message_is_error
        assert browsing.ui.mode is InputMode.NORMAL

    def test_paste_ignored_outside_inputs(self, browsing):
        press(browsing, Paste("xxx"))
        assert browsing.controller.browser.selected_count == 0

    def test_select_all_and_confirm_instant(self, browsing):
        press(browsing, "ctrl+a", "enter")
        assert browsing.controller.state is ViewState.CONFIRMING
        press(browsing, "y")
        assert browsing.controller.state is ViewState.CLEANING
        wait_for(browsing.controller, ViewState.SUMMARY)
        assert browsing.controller.report.deleted_count == 3
        press(browsing, "enter")
        assert browsing.done


class TestConfirmation:
    def test_buttons(self, browsing):
        press(browsing, "ctrl+a", "enter", "tab")
        assert browsing.ui.button == 1
        press(browsing, "enter")
        assert browsing.controller.state is ViewState.FILE_BROWSING
        assert browsing.controller.browser.selected_count == 3

    def test_cancel(self, browsing):
        press(browsing, "ctrl+a", "enter", "n")
        assert browsing.controller.state is ViewState.FILE_BROWSING
        assert browsing.controller.gate is None

    def test_low_risk_starts_on_confirm(self, browsing):
        press(browsing, "ctrl+a", "enter")
        assert browsing.controller.gate.tier is RiskTier.LOW
        assert BUTTONS[browsing.ui.button] == "Confirm"

    def test_high_risk_starts_on_cancel(self, make_app, entry, clock):
        files = [entry(f"cache/{i}.bin", size=10) for i in range(600)]
        app = make_app(files)
        press(app, "enter", "ctrl+a", "enter")
        gate = app.controller.gate
        assert gate.tier is RiskTier.HIGH
        assert BUTTONS[app.ui.button] == "Cancel"

        app.tick()
        clock.now += 3.0
        app.tick()
        assert gate.state is GateState.AWAITING_DECISION
        press(app, "enter")
        assert app.controller.state is ViewState.FILE_BROWSING
        assert app.controller.browser.selected_count == 600

    def test_countdown_driven_by_clock(self, make_app, entry, clock):
        files = [entry(f"pip/{i}.whl", category="package_managers") for i in range(3)]
        app = make_app(files)
        press(app, "a", "enter", "ctrl+a", "enter")
        gate = app.controller.gate
        assert gate.state is GateState.COUNTDOWN_LOCKED

        app.tick()
        clock.now += 1.2
        app.tick()
        assert gate.seconds_remaining == 2

        press(app, "y")
        assert app.controller.state is ViewState.CONFIRMING
        assert app.controller.notice == "Confirmation is still locked."

        clock.now += 2.0
        app.tick()
        assert gate.state is GateState.AWAITING_DECISION
        press(app, "y")
        assert app.controller.state is ViewState.CLEANING

    def test_typed_phrase(self, make_app, entry):
        files = [entry(f"cache/{i}.bin", size=10) for i in range(1001)]
        app = make_app(files)
        press(app, "enter", "ctrl+a", "enter")
        gate = app.controller.gate
        assert gate.state is GateState.TYPED_PHRASE_REQUIRED

        press(app, "y")
        assert gate.typed_buffer == "Y"
        assert app.controller.state is ViewState.CONFIRMING
        press(app, "backspace", "d", "e", "l", "e", "t", "e")
        assert gate.phrase_matches

        press(app, "enter")
        assert app.controller.state is ViewState.CLEANING

    def test_typed_phrase_paste(self, make_app, entry):
        files = [entry(f"cache/{i}.bin", size=10) for i in range(1001)]
        app = make_app(files)
        press(app, "enter", "ctrl+a", "enter", Paste("delete "), "enter")
        assert app.controller.gate.typed_buffer == "delete "
        assert app.controller.state is ViewState.CONFIRMING
        assert app.controller.notice == "Confirmation is still locked."

        press(app, Paste("delete"), "enter")
        assert app.controller.state is ViewState.CLEANING

