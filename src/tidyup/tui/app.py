"""Interactive wizard loop: keys in, workflow events out, screen redrawn."""

from __future__ import annotations

import logging
import time
from typing import Callable

from tidyup.models.clean_result import CleanupReport
from tidyup.tui.terminal import Key, Paste, Terminal
from tidyup.tui.views import BUTTONS, InputMode, UiState, render
from tidyup.wizard.confirmation import ConfirmationGate, GateState, RiskTier
from tidyup.wizard.controller import ViewState, WorkflowController
from tidyup.wizard.events import BackRequested, HelpToggled, QuitRequested, WorkflowEvent
from tidyup.wizard.rules import RuleKind

log = logging.getLogger(__name__)

_BULK_KINDS = {"1": RuleKind.SIZE, "2": RuleKind.AGE, "3": RuleKind.GLOB}


def _typed_char(key: Key) -> str | None:
    """The character a key stands for in a text field, if any."""
    if key == "space":
        return " "
    if isinstance(key, str) and len(key) == 1 and key.isprintable():
        return key
    return None


class InteractiveApp:
    """Single-threaded loop driving a WorkflowController from the keyboard.

    Worker output is drained with ``controller.pump`` while a scan or a
    cleanup runs; otherwise the loop waits on the keyboard. Both waits
    use the same idle timeout so the countdown keeps ticking.
    """

    def __init__(
        self,
        controller: WorkflowController,
        terminal: Terminal,
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.controller = controller
        self.terminal = terminal
        self.poll_interval = poll_interval
        self.ui = UiState()
        self.done = False
        self._clock = clock
        self._ticking: ConfirmationGate | None = None
        self._last_tick = 0.0
        controller.on_transition = self._on_transition

    def run(self) -> CleanupReport | None:
        """Run the wizard until the user exits. Returns the cleanup report, if any."""
        self.controller.start()
        with self.terminal:
            while not (self.done or self.controller.quitting):
                self._draw()
                if self.controller.busy:
                    self.controller.pump(self.poll_interval)
                    key = self.terminal.read_key(0)
                else:
                    key = self.terminal.read_key(self.poll_interval)
                self.tick()
                if key is not None:
                    self.handle_key(key)
        return self.controller.report

    def _draw(self) -> None:
        width, height = self.terminal.size()
        self.controller.viewport_height = height
        self.terminal.draw(render(self.controller, self.ui, width, height))

    def _on_transition(self, source: ViewState, target: ViewState, event: WorkflowEvent) -> None:
        if target is ViewState.HELP or source is ViewState.HELP:
            return
        self.ui = UiState()
        gate = self.controller.gate
        if target is ViewState.CONFIRMING and gate is not None and gate.tier is RiskTier.HIGH:
            self.ui.button = BUTTONS.index("Cancel")

    def tick(self) -> None:
        """Advance the confirmation countdown by the seconds that have passed."""
        gate = self.controller.gate
        if self.controller.state is not ViewState.CONFIRMING or gate is None:
            self._ticking = None
            return
        now = self._clock()
        if gate is not self._ticking:
            self._ticking = gate
            self._last_tick = now
            return
        while gate.state is GateState.COUNTDOWN_LOCKED and now - self._last_tick >= 1.0:
            gate.tick()
            self._last_tick += 1.0

    def send(self, event: WorkflowEvent) -> bool:
        return self.controller.handle(event)

    # ── keys ───────────────────────────────────────────────────────────

    def handle_key(self, key: Key) -> None:
        log.debug("Key %r in %s", key, self.controller.state.value)
        self.controller.notice = None
        if key == "ctrl+c":
            self.send(QuitRequested())
            return

        match self.controller.state:
            case ViewState.HELP:
                self._help_key(key)
            case ViewState.SCANNING | ViewState.CLEANING:
                self._global_key(key)
            case ViewState.CATEGORY_SELECTION:
                self._category_key(key)
            case ViewState.FILE_BROWSING:
                self._browser_key(key)
            case ViewState.CONFIRMING:
                self._confirm_key(key)
            case ViewState.SUMMARY:
                if key in ("enter", "q"):
                    self.done = True
                else:
                    self._global_key(key)

    def _global_key(self, key: Key) -> bool:
        if key == "q":
            self.send(QuitRequested())
        elif key == "?":
            self.send(HelpToggled())
        else:
            return False
        return True

    def _help_key(self, key: Key) -> None:
        if key in ("?", "esc"):
            self.send(BackRequested())
        elif key == "q":
            self.send(QuitRequested())

    def _category_key(self, key: Key) -> None:
        selection = self.controller.categories
        assert selection is not None
        match key:
            case "j" | "down":
                selection.move_down()
            case "k" | "up":
                selection.move_up()
            case "space":
                selection.toggle()
            case "a":
                selection.select_all()
            case "n":
                selection.select_none()
            case "enter":
                self.controller.choose_categories()
            case _:
                self._global_key(key)

    def _browser_key(self, key: Key) -> None:
        match self.ui.mode:
            case InputMode.FILTER:
                self._filter_key(key)
                return
            case InputMode.BULK_MENU:
                self._bulk_menu_key(key)
                return
            case InputMode.RULE_INPUT:
                self._rule_input_key(key)
                return
            case InputMode.NORMAL:
                pass

        browser = self.controller.browser
        assert browser is not None
        pending_g, self.ui.pending_g = self.ui.pending_g, False
        if isinstance(key, Paste):
            return
        self.ui.message = None

        match key:
            case "j" | "down":
                browser.move_down()
            case "k" | "up":
                browser.move_up()
            case "g" if pending_g:
                browser.move_top()
            case "g":
                self.ui.pending_g = True
            case "G" | "end":
                browser.move_bottom()
            case "home":
                browser.move_top()
            case "ctrl+d" | "pagedown":
                browser.page_down()
            case "ctrl+u" | "pageup":
                browser.page_up()
            case "space":
                if browser.visual_active:
                    browser.commit_visual()
                else:
                    browser.toggle()
                    browser.move_down()
            case "v":
                if browser.visual_active:
                    browser.commit_visual()
                else:
                    browser.start_visual()
            case "/":
                self.ui.mode = InputMode.FILTER
                self.ui.buffer = browser.filter_text
            case "s":
                browser.cycle_sort()
            case "r":
                browser.reverse_sort()
            case "ctrl+a":
                browser.select_all_visible()
            case "i":
                browser.invert_visible()
            case "x":
                browser.clear_all()
            case "b":
                self.ui.mode = InputMode.BULK_MENU
            case "enter":
                self.controller.choose_files()
            case "esc":
                if browser.visual_active:
                    browser.cancel_visual()
                else:
                    self.send(BackRequested())
            case _:
                self._global_key(key)

    def _edit_buffer(self, key: Key) -> bool:
        """Apply a text-editing key to the input buffer. Returns True if it did."""
        if isinstance(key, Paste):
            self.ui.buffer += key.text
            return True
        if key == "backspace":
            self.ui.buffer = self.ui.buffer[:-1]
            return True
        char = _typed_char(key)
        if char is None:
            return False
        self.ui.buffer += char
        return True

    def _filter_key(self, key: Key) -> None:
        browser = self.controller.browser
        assert browser is not None
        if key == "enter":
            self.ui.mode = InputMode.NORMAL
        elif key == "esc":
            self.ui.mode = InputMode.NORMAL
            self.ui.buffer = ""
            browser.set_filter("")
        elif self._edit_buffer(key):
            browser.set_filter(self.ui.buffer)

    def _bulk_menu_key(self, key: Key) -> None:
        if isinstance(key, str) and key in _BULK_KINDS:
            self.ui.mode = InputMode.RULE_INPUT
            self.ui.rule_kind = _BULK_KINDS[key]
            self.ui.buffer = ""
        elif key == "esc":
            self.ui.mode = InputMode.NORMAL

    def _rule_input_key(self, key: Key) -> None:
        browser = self.controller.browser
        assert browser is not None and self.ui.rule_kind is not None
        if key == "esc":
            self.ui.mode = InputMode.NORMAL
        elif key == "enter":
            outcome = browser.select_matching(self.ui.rule_kind, self.ui.buffer)
            self.ui.mode = InputMode.NORMAL
            if outcome.ok:
                self.ui.message = f"Selected {outcome.selected:,} more files"
                self.ui.message_is_error = False
            else:
                self.ui.message = outcome.error
                self.ui.message_is_error = True
        else:
            self._edit_buffer(key)

    def _confirm_key(self, key: Key) -> None:
        gate = self.controller.gate
        assert gate is not None

        if gate.state is GateState.TYPED_PHRASE_REQUIRED:
            if isinstance(key, Paste):
                gate.paste(key.text)
                return
            if key == "backspace":
                gate.backspace()
                return
            if key == "enter":
                self._activate(0)
                return
            char = _typed_char(key)
            if char is not None:
                gate.type_key(char)
                return

        match key:
            case "tab" | "right":
                self.ui.button = (self.ui.button + 1) % len(BUTTONS)
            case "shift+tab" | "left":
                self.ui.button = (self.ui.button - 1) % len(BUTTONS)
            case "y":
                self._activate(0)
            case "r":
                self._activate(1)
            case "n" | "esc":
                self._activate(2)
            case "enter":
                self._activate(self.ui.button)
            case _:
                self._global_key(key)

    def _activate(self, button: int) -> None:
        match BUTTONS[button]:
            case "Confirm":
                if not self.controller.confirm():
                    self.controller.notice = "Confirmation is still locked."
            case "Review":
                self.controller.review()
            case "Cancel":
                self.send(BackRequested())
