"""Render functions for each wizard screen.

Every ``render_*`` function builds a rich renderable for one view state;
the terminal shows it full screen through ``rich.live.Live``. Text is
always built with :class:`rich.text.Text` so paths and typed input are
never parsed as console markup.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from rich import box
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from tidyup.core.progress import CleanProgress
from tidyup.models.clean_result import CleanupReport, group_errors
from tidyup.utils import bytes_to_human, format_age, format_elapsed, truncate_path
from tidyup.wizard.browser import SelectionBrowser
from tidyup.wizard.categories import CategorySelection, Safety, category_label
from tidyup.wizard.confirmation import ConfirmationGate, GateState, Protocol, RiskTier
from tidyup.wizard.controller import ViewState, WorkflowController
from tidyup.wizard.monitor import ProgressMonitor
from tidyup.wizard.rules import RuleKind

BUTTONS = ("Confirm", "Review", "Cancel")
MAX_ERROR_PATHS = 3
BAR_WIDTH = 40

_SAFETY_COLORS = {Safety.SAFE: "green", Safety.CAUTION: "yellow", Safety.RISKY: "red"}
_TIER_COLORS = {RiskTier.LOW: "green", RiskTier.MEDIUM: "yellow", RiskTier.HIGH: "red"}

RULE_PROMPTS = {
    RuleKind.SIZE: "Minimum size (e.g. 10M, 1.5 GB)",
    RuleKind.AGE: "Older than (days)",
    RuleKind.GLOB: "Name pattern (e.g. *.log)",
}

HELP_TEXT: dict[ViewState, list[tuple[str, str]]] = {
    ViewState.SCANNING: [
        ("q, ctrl+c", "Stop scanning and quit"),
    ],
    ViewState.CATEGORY_SELECTION: [
        ("j/k, up/down", "Move"),
        ("space", "Toggle category"),
        ("a / n", "Select all / none"),
        ("enter", "Browse files of the chosen categories"),
        ("q", "Quit"),
    ],
    ViewState.FILE_BROWSING: [
        ("j/k, up/down", "Move"),
        ("g g / G", "First / last file"),
        ("ctrl+d / ctrl+u", "Page down / up"),
        ("space", "Toggle file"),
        ("v", "Visual range; space or v again applies it"),
        ("/", "Filter by name (enter keeps, esc clears)"),
        ("s / r", "Cycle sort field / reverse order"),
        ("ctrl+a / i / x", "Select visible / invert visible / clear all"),
        ("b", "Bulk select by size, age or name pattern"),
        ("enter", "Continue with the selected files"),
        ("esc", "Back to categories"),
    ],
    ViewState.CONFIRMING: [
        ("y", "Confirm deletion"),
        ("r", "Review the selection"),
        ("n, esc", "Cancel"),
        ("tab, left/right", "Move between buttons"),
        ("letters, enter", "Type the confirmation phrase and submit it when asked"),
    ],
    ViewState.CLEANING: [
        ("", "Deletion is running and cannot be interrupted"),
    ],
    ViewState.SUMMARY: [
        ("enter, q", "Exit"),
    ],
}


class InputMode(str, Enum):
    NORMAL = "normal"
    FILTER = "filter"
    BULK_MENU = "bulk_menu"
    RULE_INPUT = "rule_input"


@dataclass(slots=True)
class UiState:
    """Transient front-end state that is not part of the workflow."""

    mode: InputMode = InputMode.NORMAL
    buffer: str = ""
    rule_kind: RuleKind | None = None
    message: str | None = None
    message_is_error: bool = False
    button: int = 0
    pending_g: bool = False


def render(controller: WorkflowController, ui: UiState, width: int, height: int) -> RenderableType:
    """Build the full screen for the controller's current state."""
    unreadable = controller.scan_result.errors if controller.scan_result is not None else []
    match controller.state:
        case ViewState.SCANNING:
            screen = render_scanning(controller.monitor, width)
        case ViewState.CATEGORY_SELECTION:
            assert controller.categories is not None
            screen = render_categories(controller.categories, controller.scan_error, width, unreadable)
        case ViewState.FILE_BROWSING:
            assert controller.browser is not None
            screen = render_browser(controller.browser, ui, width, height)
        case ViewState.CONFIRMING:
            assert controller.gate is not None
            screen = render_confirmation(controller.gate, ui, width, controller.runner.cleaner.config.dry_run)
        case ViewState.CLEANING:
            screen = render_cleaning(controller.clean_progress, width)
        case ViewState.SUMMARY:
            assert controller.report is not None
            screen = render_summary(controller.report, controller.scan_error, width, unreadable)
        case ViewState.HELP:
            screen = render_help(controller.previous or ViewState.SCANNING)

    parts: list[RenderableType] = [screen]
    if controller.notice:
        parts.append(Text(f"  {controller.notice}", style="yellow"))
    parts.append(_footer(controller.state))
    return Group(*parts)


def _screen(title: str, *body: RenderableType, border_style: str = "cyan") -> Panel:
    return Panel(
        Group(*body),
        title=Text.assemble(("tidyup", "bold cyan"), "  ", (title, "bold")),
        title_align="left",
        box=box.ROUNDED,
        border_style=border_style,
        padding=(0, 1),
    )


def _footer(state: ViewState) -> Text:
    if state is ViewState.HELP:
        hint = "? or esc to close help"
    elif state is ViewState.CLEANING:
        hint = "please wait"
    else:
        hint = "? help  q quit"
    return Text(f"  {hint}", style="dim")


def _bar(percent: int) -> Table:
    grid = Table.grid(padding=(0, 1))
    grid.add_row(
        ProgressBar(total=100, completed=percent, width=BAR_WIDTH),
        Text(f"{percent:3d}%"),
    )
    return grid


def _scan_banner(error: Exception | None, unreadable: Sequence[str] = ()) -> list[RenderableType]:
    banner: list[RenderableType] = []
    if error is not None:
        banner.append(Text(f"Warning: {error}", style="yellow"))
    if unreadable:
        banner.append(Text(f"{len(unreadable):,} folders could not be read and were skipped", style="yellow"))
    if banner:
        banner.append(Text(""))
    return banner


# ── scanning ─────────────────────────────────────────────────────────────

def render_scanning(monitor: ProgressMonitor | None, width: int) -> Panel:
    if monitor is None:
        return _screen("Scanning", Text("Starting..."))

    files_per_s, bytes_per_s = monitor.throughput
    body: list[RenderableType] = [
        _bar(monitor.percent_complete),
        Text(
            f"{monitor.total_files:,} files, {bytes_to_human(monitor.total_size)} "
            f"in {format_elapsed(monitor.elapsed)} "
            f"({files_per_s:,.0f} files/s, {bytes_to_human(int(bytes_per_s))}/s)"
        ),
    ]

    table = Table(box=box.SIMPLE_HEAD, header_style="bold")
    table.add_column("", width=1)
    table.add_column("Category")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for name, progress in monitor.categories.items():
        mark = Text("✓", style="green") if progress.done else Text("…", style="yellow")
        table.add_row(mark, category_label(name), f"{progress.count:,}", bytes_to_human(progress.size_bytes))
    body.append(table)

    if monitor.current_path is not None:
        body.append(Text(truncate_path(str(monitor.current_path), width - 6), style="dim"))

    hot = monitor.hot_folders()
    if hot:
        folders = Table(title="Busiest folders", title_justify="left", box=None, show_header=False)
        folders.add_column(justify="right")
        folders.add_column(no_wrap=True, overflow="ellipsis")
        for folder, count in hot:
            folders.add_row(f"{count:,}", Text(truncate_path(folder, width - 16)))
        body += [Text(""), folders]
    return _screen("Scanning", *body)


# ── category selection ──────────────────────────────────────────────────

def render_categories(
    selection: CategorySelection,
    scan_error: Exception | None,
    width: int,
    unreadable: Sequence[str] = (),
) -> Panel:
    banner = _scan_banner(scan_error, unreadable)
    if not len(selection):
        return _screen("Choose categories", *banner, Text("Nothing to clean, your system is tidy."))

    table = Table(box=box.SIMPLE_HEAD, header_style="bold")
    table.add_column("Category")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Safety")
    for index, choice in enumerate(selection.choices):
        safety = choice.info.safety
        table.add_row(
            Text(f"{'[x]' if choice.selected else '[ ]'} {choice.label}"),
            f"{choice.count:,}",
            bytes_to_human(choice.size_bytes),
            Text(safety.value, style=_SAFETY_COLORS[safety]),
            style="reverse" if index == selection.cursor else None,
        )

    current = selection.choices[selection.cursor]
    return _screen(
        "Choose categories",
        *banner,
        table,
        Text(truncate_path(current.info.description, width - 6), style="dim"),
        Text(""),
        Text.assemble(
            f"Chosen: {selection.chosen_count:,} files, ",
            (bytes_to_human(selection.chosen_size), "bold green"),
        ),
    )


# ── file browser ────────────────────────────────────────────────────────

def render_browser(browser: SelectionBrowser, ui: UiState, width: int, height: int) -> Panel:
    arrow = "desc" if browser.descending else "asc"
    header = f"{len(browser):,} of {len(browser.canonical):,} files  sort: {browser.sort_field.value} {arrow}"
    if browser.filter_text:
        header += f"  filter: {browser.filter_text}"
    body: list[RenderableType] = [Text(header, style="dim")]

    rows = browser.page(height)
    if rows:
        now = time.time()
        table = Table(box=box.SIMPLE_HEAD, header_style="bold", expand=True)
        table.add_column("", width=3)
        table.add_column("Size", justify="right")
        table.add_column("Age", justify="right")
        table.add_column("Category", max_width=16, no_wrap=True)
        table.add_column("Path", ratio=1, no_wrap=True, overflow="ellipsis")
        for row in rows:
            entry = row.entry
            style = "reverse" if row.is_cursor else "on blue" if row.in_visual else None
            table.add_row(
                Text("[x]" if row.selected else "[ ]"),
                bytes_to_human(entry.size_bytes),
                format_age(entry.mtime, now),
                category_label(entry.category),
                Text(truncate_path(str(entry.path), max(width - 44, 10))),
                style=style,
            )
        body.append(table)
    else:
        body.append(Text("No files match the filter." if browser.filter_text else "No files."))

    status = Text.assemble(
        f"Selected: {browser.selected_count:,} files, ",
        (bytes_to_human(browser.selected_size), "bold green"),
    )
    if browser.visual_active:
        status.append("  -- VISUAL --", style="bold magenta")
    body.append(status)

    match ui.mode:
        case InputMode.FILTER:
            body.append(Text(f"/{ui.buffer}_"))
        case InputMode.BULK_MENU:
            body.append(Text("Select by: [1] size at least  [2] older than  [3] name pattern  [esc] cancel"))
        case InputMode.RULE_INPUT:
            assert ui.rule_kind is not None
            body.append(Text(f"{RULE_PROMPTS[ui.rule_kind]}: {ui.buffer}_"))
        case InputMode.NORMAL:
            pass

    if ui.message:
        body.append(Text(ui.message, style="red" if ui.message_is_error else "green"))
    return _screen("Select files", *body)


# ── confirmation ────────────────────────────────────────────────────────

def render_confirmation(gate: ConfirmationGate, ui: UiState, width: int, dry_run: bool = False) -> Panel:
    color = _TIER_COLORS[gate.tier]
    categories = ", ".join(category_label(c) for c in gate.assessment.categories)
    body: list[RenderableType] = [
        Text.assemble("Risk: ", (gate.tier.value.upper(), f"bold {color}")),
        Text.assemble(f"{len(gate.files):,} files, ", (bytes_to_human(gate.total_size), "bold"), f" in {categories}"),
    ]

    largest = Table(box=None, show_header=False, padding=(0, 1, 0, 2))
    largest.add_column(justify="right")
    largest.add_column(no_wrap=True, overflow="ellipsis")
    for entry in sorted(gate.files, key=lambda f: -f.size_bytes)[:5]:
        largest.add_row(bytes_to_human(entry.size_bytes), Text(truncate_path(str(entry.path), width - 22)))
    body.append(largest)
    if len(gate.files) > 5:
        body.append(Text(f"  ... and {len(gate.files) - 5:,} more", style="dim"))
    body.append(Text(""))

    if dry_run:
        body += [Text("Dry run: nothing will actually be deleted.", style="cyan"), Text("")]

    match gate.state:
        case GateState.COUNTDOWN_LOCKED:
            body.append(Text(f"Confirm unlocks in {gate.seconds_remaining}s...", style="yellow"))
        case GateState.TYPED_PHRASE_REQUIRED:
            body.append(
                Text.assemble(
                    "Type ",
                    (gate.required_phrase, "bold"),
                    " to confirm: ",
                    (gate.typed_buffer, "green" if gate.phrase_matches else "red"),
                    "_",
                )
            )
        case _ if gate.assessment.protocol is Protocol.INSTANT:
            body.append(Text("Press y to delete these files."))
        case _:
            body.append(Text("Confirm is unlocked."))
    body.append(Text(""))

    buttons = Text()
    for index, label in enumerate(BUTTONS):
        if index:
            buttons.append("  ")
        if index == ui.button:
            style = "reverse"
        elif index == 0 and gate.state is GateState.COUNTDOWN_LOCKED:
            style = "dim"
        else:
            style = None
        buttons.append(f"[ {label} ]", style=style)
    body.append(buttons)
    return _screen("Confirm cleanup", *body, border_style=color)


# ── cleaning ────────────────────────────────────────────────────────────

def render_cleaning(progress: CleanProgress | None, width: int) -> Panel:
    if progress is None:
        return _screen("Cleaning", Text("Starting..."))
    percent = progress.processed * 100 // max(progress.total, 1)
    return _screen(
        "Cleaning",
        _bar(percent),
        Text(f"{progress.processed:,} of {progress.total:,} files, {bytes_to_human(progress.deleted_size)} freed"),
        Text(""),
        Text(truncate_path(str(progress.current_path), width - 6), style="dim"),
    )


# ── summary ─────────────────────────────────────────────────────────────

def render_summary(
    report: CleanupReport,
    scan_error: Exception | None,
    width: int,
    unreadable: Sequence[str] = (),
) -> Panel:
    title = "Dry run complete" if report.was_dry_run else "Cleanup complete"
    verb = "Would free" if report.was_dry_run else "Freed"
    body = _scan_banner(scan_error, unreadable)
    body.append(
        Text.assemble(
            f"{verb} ",
            (bytes_to_human(report.deleted_size), "bold green"),
            f" from {report.deleted_count:,} files",
        )
    )
    if report.skipped_count:
        body.append(Text(f"Skipped {report.skipped_count:,} files"))

    if report.freed_by_category:
        freed = Table(box=box.SIMPLE_HEAD, header_style="bold")
        freed.add_column("Category")
        freed.add_column(verb, justify="right")
        for category, size in sorted(report.freed_by_category.items(), key=lambda item: -item[1]):
            freed.add_row(category_label(category), bytes_to_human(size))
        body.append(freed)

    if report.has_errors:
        errors = Table(
            title=f"{len(report.error_records):,} errors",
            title_style="bold red",
            title_justify="left",
            box=box.SIMPLE_HEAD,
            header_style="bold",
            expand=True,
        )
        errors.add_column("Reason", no_wrap=True)
        errors.add_column("Files", justify="right")
        errors.add_column("Details", ratio=1)
        for group in group_errors(report.error_records).values():
            details = Text(group[0].user_message)
            for error in group[:MAX_ERROR_PATHS]:
                details.append("\n" + truncate_path(str(error.path), width - 40), style="dim")
            if len(group) > MAX_ERROR_PATHS:
                details.append(f"\n... and {len(group) - MAX_ERROR_PATHS} more", style="dim")
            errors.add_row(group[0].label, f"{len(group):,}", details)
        body.append(errors)
    return _screen(title, *body, border_style="red" if report.has_errors else "green")


# ── help ────────────────────────────────────────────────────────────────

def render_help(previous: ViewState) -> Panel:
    table = Table(box=None, show_header=False, padding=(0, 2, 0, 0))
    table.add_column(style="cyan", no_wrap=True)
    table.add_column()
    for keys, description in HELP_TEXT.get(previous, []):
        table.add_row(keys, description)
    table.add_row("", "")
    table.add_row("?", "Toggle this help")
    return _screen("Help", table)
