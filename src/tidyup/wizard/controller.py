"""Top-level state machine sequencing scan, selection, confirmation and cleanup."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, assert_never

from tidyup.core.engine import ScanEngine
from tidyup.core.progress import TIMEOUT, CleanProgress, CleanupFinished, ScanFinished, Subscription
from tidyup.core.tracker import Tracker
from tidyup.models.clean_result import CleanupReport
from tidyup.models.scan_result import ScanResult
from tidyup.wizard.browser import SelectionBrowser
from tidyup.wizard.categories import CategorySelection
from tidyup.wizard.confirmation import ConfirmationGate, Decision
from tidyup.wizard.events import (
    BackRequested,
    CategoriesChosen,
    CleanupComplete,
    Confirmed,
    FilesChosen,
    HelpToggled,
    QuitRequested,
    ReviewRequested,
    ScanComplete,
    WorkflowEvent,
)
from tidyup.wizard.monitor import ProgressMonitor
from tidyup.wizard.runner import CleanupRunner

log = logging.getLogger(__name__)

_MAX_EVENTS_PER_PUMP = 256


class ViewState(str, Enum):
    SCANNING = "scanning"
    CATEGORY_SELECTION = "category_selection"
    FILE_BROWSING = "file_browsing"
    CONFIRMING = "confirming"
    CLEANING = "cleaning"
    SUMMARY = "summary"
    HELP = "help"


TransitionListener = Callable[[ViewState, ViewState, WorkflowEvent], None]


class WorkflowController:
    """Routes workflow events to state transitions.

    Each step's model is built from the previous step's output: the
    category checklist from the scan result, the browser from the chosen
    categories, the gate from the chosen files. Review is the one way
    back into a live model, returning to the same browser.
    """

    def __init__(
        self,
        engine: ScanEngine,
        runner: CleanupRunner,
        tracker: Tracker | None = None,
        viewport_height: int = 24,
        on_transition: TransitionListener | None = None,
    ) -> None:
        self.engine = engine
        self.runner = runner
        self.tracker = tracker
        self.viewport_height = viewport_height
        self.on_transition = on_transition

        self.cancel = threading.Event()
        self.state = ViewState.SCANNING
        self.previous: ViewState | None = None
        self.history: list[WorkflowEvent] = []
        self.quitting = False
        self.notice: str | None = None

        self.monitor: ProgressMonitor | None = None
        self.scan_result: ScanResult | None = None
        self.scan_error: Exception | None = None
        self.categories: CategorySelection | None = None
        self.browser: SelectionBrowser | None = None
        self.gate: ConfirmationGate | None = None
        self.clean_progress: CleanProgress | None = None
        self.report: CleanupReport | None = None
        self._clean_sub: Subscription | None = None

        self._transitions: dict[tuple[ViewState, type], Callable[..., ViewState | None]] = {
            (ViewState.SCANNING, ScanComplete): self._on_scan_complete,
            (ViewState.CATEGORY_SELECTION, CategoriesChosen): self._on_categories_chosen,
            (ViewState.FILE_BROWSING, FilesChosen): self._on_files_chosen,
            (ViewState.CONFIRMING, Confirmed): self._on_confirmed,
            (ViewState.CONFIRMING, ReviewRequested): self._on_review_requested,
            (ViewState.CLEANING, CleanupComplete): self._on_cleanup_complete,
        }

    # ── driving ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background scan."""
        subscription = self.engine.start(self.cancel)
        self.monitor = ProgressMonitor(subscription, target_count=self.engine.config.target_count)
        log.info("Scan started")

    @property
    def busy(self) -> bool:
        """Whether a background worker is feeding the current state."""
        return self.state in (ViewState.SCANNING, ViewState.CLEANING)

    def pump(self, timeout: float = 0.1) -> bool:
        """Drain pending worker events for the current state.

        Waits at most ``timeout`` for the first event and then takes
        whatever else is already queued. Returns True if anything arrived.
        """
        received = False
        for _ in range(_MAX_EVENTS_PER_PUMP):
            wait = 0.0 if received else timeout
            if self.state is ViewState.SCANNING and self.monitor is not None:
                event = self.monitor.poll(wait)
                if isinstance(event, ScanFinished):
                    self.handle(ScanComplete(event.result, event.error))
            elif self.state is ViewState.CLEANING and self._clean_sub is not None:
                event = self._clean_sub.poll(wait)
                if isinstance(event, CleanProgress):
                    self.clean_progress = event
                elif isinstance(event, CleanupFinished):
                    self.handle(CleanupComplete(event.report))
            else:
                return received
            if event is TIMEOUT:
                return received
            received = True
        return received

    def handle(self, event: WorkflowEvent) -> bool:
        """Apply one event. Returns True if the state machine accepted it."""
        match event:
            case HelpToggled():
                return self._toggle_help(event)
            case BackRequested():
                return self._go_back(event)
            case QuitRequested():
                return self._quit(event)
            case (
                ScanComplete()
                | CategoriesChosen()
                | FilesChosen()
                | Confirmed()
                | ReviewRequested()
                | CleanupComplete()
            ):
                return self._transition(event)
            case _:
                assert_never(event)

    # ── convenience actions for the front end ──────────────────────────

    def choose_categories(self) -> bool:
        if self.categories is None:
            return False
        return self.handle(CategoriesChosen(tuple(self.categories.chosen())))

    def choose_files(self) -> bool:
        if self.browser is None:
            return False
        return self.handle(FilesChosen(tuple(self.browser.selected_entries())))

    def confirm(self) -> bool:
        if self.gate is None or not self.gate.request_confirm():
            return False
        return self.handle(Confirmed())

    def review(self) -> bool:
        if self.gate is None or not self.gate.request_review():
            return False
        return self.handle(ReviewRequested())

    # ── transitions ────────────────────────────────────────────────────

    def _transition(self, event: WorkflowEvent) -> bool:
        handler = self._transitions.get((self.state, type(event)))
        if handler is None:
            log.debug("Ignoring %s in state %s", type(event).__name__, self.state.value)
            return False
        target = handler(event)
        if target is None:
            return False
        self._enter(target, event)
        return True

    def _enter(self, target: ViewState, event: WorkflowEvent) -> None:
        source = self.state
        self.state = target
        self.history.append(event)
        log.info("%s -> %s (%s)", source.value, target.value, type(event).__name__)
        if self.on_transition:
            self.on_transition(source, target, event)

    def _on_scan_complete(self, event: ScanComplete) -> ViewState:
        self.scan_result = event.result
        self.scan_error = event.error
        self.categories = CategorySelection(event.result.group_by_category())
        return ViewState.CATEGORY_SELECTION

    def _on_categories_chosen(self, event: CategoriesChosen) -> ViewState | None:
        if not event.categories:
            self.notice = "Select at least one category."
            return None
        assert self.scan_result is not None
        files = self.scan_result.for_categories(event.categories)
        self.browser = SelectionBrowser(files, viewport_height=self.viewport_height)
        self.notice = None
        return ViewState.FILE_BROWSING

    def _on_files_chosen(self, event: FilesChosen) -> ViewState | None:
        if not event.files:
            self.notice = "Nothing selected."
            return None
        self.gate = ConfirmationGate(event.files)
        self.notice = None
        return ViewState.CONFIRMING

    def _on_confirmed(self, event: Confirmed) -> ViewState | None:
        if self.gate is None or self.gate.decision is not Decision.CONFIRMED:
            log.warning("Confirmed event without a confirmed gate, ignoring")
            return None
        self.clean_progress = None
        self._clean_sub = self.runner.start(self.gate, self.cancel)
        return ViewState.CLEANING

    def _on_review_requested(self, event: ReviewRequested) -> ViewState:
        if self.gate is not None and not self.gate.resolved:
            self.gate.request_review()
        self.gate = None
        return ViewState.FILE_BROWSING

    def _on_cleanup_complete(self, event: CleanupComplete) -> ViewState:
        self.report = event.report
        self._clean_sub = None
        if self.tracker is not None:
            self.tracker.record(event.report)
            self.tracker.save_session()
        return ViewState.SUMMARY

    def _toggle_help(self, event: HelpToggled) -> bool:
        if self.state is ViewState.HELP:
            return self._leave_help(event)
        self.previous = self.state
        self._enter(ViewState.HELP, event)
        return True

    def _leave_help(self, event: WorkflowEvent) -> bool:
        target = self.previous or ViewState.SCANNING
        self.previous = None
        self._enter(target, event)
        return True

    def _go_back(self, event: BackRequested) -> bool:
        match self.state:
            case ViewState.HELP:
                return self._leave_help(event)
            case ViewState.FILE_BROWSING:
                self.browser = None
                self._enter(ViewState.CATEGORY_SELECTION, event)
                return True
            case ViewState.CONFIRMING:
                if self.gate is not None:
                    self.gate.request_cancel()
                self.gate = None
                self._enter(ViewState.FILE_BROWSING, event)
                return True
            case _:
                return False

    def _quit(self, event: QuitRequested) -> bool:
        if ViewState.CLEANING in (self.state, self.previous if self.state is ViewState.HELP else None):
            self.notice = "Cleanup in progress, please wait."
            log.info("Quit refused while cleaning")
            return False
        if self.gate is not None and not self.gate.resolved:
            self.gate.request_cancel()
        self.quitting = True
        self.cancel.set()
        self.history.append(event)
        log.info("Quit requested in state %s", self.state.value)
        return True
