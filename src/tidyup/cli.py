"""CLI interface for tidyup."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path

import click

from tidyup.core.cleaner import Cleaner
from tidyup.core.engine import ScanEngine
from tidyup.core.plugin_loader import load_scanners
from tidyup.core.registry import ScannerRegistry
from tidyup.core.tracker import PERIODS, Tracker
from tidyup.models.clean_result import CleanupReport, group_errors
from tidyup.models.scan_result import FileEntry
from tidyup.settings import Config, load_config
from tidyup.utils import bytes_to_human, format_relative_time, xdg_state_home
from tidyup.wizard.categories import CATEGORY_ORDER, category_info, category_label
from tidyup.wizard.confirmation import ConfirmationGate, GateState, Protocol
from tidyup.wizard.runner import CleanupRunner

DEFAULT_LOG_FILE = xdg_state_home() / "tidyup" / "tidyup.log"


def _setup_logging(verbosity: int, log_file: Path | None = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    if log_file is None:
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
        return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        click.echo(f"Cannot create log directory {log_file.parent}: {e}", err=True)
        return
    logging.basicConfig(
        level=level,
        filename=log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(dry_run: bool = False) -> Config:
    config = load_config()
    if dry_run:
        config = config.with_overrides(dry_run=True)
    return config


def _build_engine(config: Config) -> ScanEngine:
    registry = ScannerRegistry()
    load_scanners(registry, config)
    return ScanEngine(registry, config)


def _scan(engine: ScanEngine, categories: tuple[str, ...]) -> list[FileEntry]:
    result, error = engine.scan_all()
    if error is not None:
        click.echo(click.style(f"Warning: {error}", fg="yellow"), err=True)
    if categories:
        return result.for_categories(categories)
    return list(result.files)


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where the interactive wizard writes its log",
)
@click.pass_context
def main(ctx: click.Context, verbose: int, log_file: Path | None) -> None:
    """tidyup - an interactive disk cleanup wizard for Linux."""
    # The wizard owns the terminal, so it logs to a file
    if ctx.invoked_subcommand in (None, "interactive"):
        _setup_logging(verbose, log_file or DEFAULT_LOG_FILE)
    else:
        _setup_logging(verbose, log_file)

    if ctx.invoked_subcommand is None:
        ctx.invoke(interactive)


# ── interactive ──────────────────────────────────────────────────────────

@main.command()
@click.option("--dry-run", is_flag=True, help="Walk through the wizard without deleting anything")
def interactive(dry_run: bool) -> None:
    """Scan, choose categories and files, confirm, clean."""
    from tidyup.tui.app import InteractiveApp
    from tidyup.tui.terminal import Terminal
    from tidyup.wizard.controller import WorkflowController

    if not sys.stdin.isatty():
        raise click.UsageError("The interactive wizard needs a terminal; use 'tidyup clean' instead.")

    config = _load_config(dry_run)
    engine = _build_engine(config)
    terminal = Terminal()
    controller = WorkflowController(
        engine,
        CleanupRunner(Cleaner(config)),
        tracker=Tracker(),
        viewport_height=terminal.size()[1],
    )
    report = InteractiveApp(controller, terminal, poll_interval=config.poll_interval).run()

    if report is not None:
        _print_report(report)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.option("--category", "-c", "categories", multiple=True, help="Only report this category")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(categories: tuple[str, ...], as_json: bool) -> None:
    """Scan for cleanable files (preview only, never deletes)."""
    config = _load_config()
    engine = _build_engine(config)

    if not as_json:
        click.echo(f"\nScanning with {len(engine.registry.get_available())} scanners...\n")

    result, error = engine.scan_all()
    files = result.for_categories(categories) if categories else list(result.files)
    summary: dict[str, dict[str, int]] = {}
    for entry in files:
        bucket = summary.setdefault(entry.category, {"count": 0, "size_bytes": 0})
        bucket["count"] += 1
        bucket["size_bytes"] += entry.size_bytes

    if as_json:
        data = {
            "total_count": len(files),
            "total_size": sum(f.size_bytes for f in files),
            "categories": summary,
            "failed": error.failed if error is not None else {},
            "unreadable": result.errors,
            "files": [
                {
                    "path": str(f.path),
                    "size_bytes": f.size_bytes,
                    "mtime": f.mtime,
                    "category": f.category,
                    "reason": f.reason,
                }
                for f in files
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    if not files:
        click.echo("Nothing to clean.")
    ordered = sorted(
        summary,
        key=lambda c: (CATEGORY_ORDER.index(c) if c in CATEGORY_ORDER else len(CATEGORY_ORDER), c),
    )
    for category in ordered:
        bucket = summary[category]
        click.echo(
            f"  {click.style('✓', fg='green')} {category_label(category):20s} "
            f"{click.style(bytes_to_human(bucket['size_bytes']), fg='green', bold=True):>22s} "
            f"({bucket['count']:,} files)"
        )

    if error is not None:
        for scanner_id, message in sorted(error.failed.items()):
            click.echo(f"  {click.style('✗', fg='red')} {scanner_id:20s} error during scan: {message}")
    if result.errors:
        click.echo(
            click.style(f"  {len(result.errors):,} folders could not be read", fg="yellow")
            + " (run with -vv for details)"
        )

    total = sum(f.size_bytes for f in files)
    click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@click.option(
    "--category",
    "-c",
    "categories",
    multiple=True,
    help="Clean this category (default: the categories that are safe to clean)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be cleaned without doing it")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt for low-risk cleanups")
def clean(categories: tuple[str, ...], dry_run: bool, yes: bool) -> None:
    """Scan and clean, behind the same confirmation rules as the wizard."""
    config = _load_config(dry_run)
    engine = _build_engine(config)

    click.echo("\nScanning...\n")
    files = _scan(engine, categories)
    if not categories:
        files = [f for f in files if category_info(f.category).recommended]

    if not files:
        click.echo("Nothing to clean.")
        return

    gate = ConfirmationGate(files)
    names = ", ".join(category_label(c) for c in gate.assessment.categories)
    click.echo(
        f"  {len(files):,} files, {click.style(bytes_to_human(gate.total_size), fg='green', bold=True)} "
        f"in {names}"
    )
    click.echo(f"  Risk: {gate.tier.value}\n")

    if not _confirm(gate, yes):
        gate.request_cancel()
        click.echo("Aborted.")
        sys.exit(1)

    click.echo("\nCleaning...\n")
    report = CleanupRunner(Cleaner(config)).run(gate)
    tracker = Tracker()
    tracker.record(report)
    tracker.save_session()
    _print_report(report)


def _confirm(gate: ConfirmationGate, yes: bool) -> bool:
    """Walk the gate's protocol on the command line."""
    match gate.assessment.protocol:
        case Protocol.INSTANT:
            if not yes and not click.confirm("Delete these files?", default=False):
                return False
        case Protocol.COUNTDOWN:
            click.echo(click.style("High-risk cleanup, take a moment to check the list.", fg="yellow"))
            while gate.state is GateState.COUNTDOWN_LOCKED:
                click.echo(f"  {gate.seconds_remaining}...")
                time.sleep(1)
                gate.tick()
            if not click.confirm("Delete these files?", default=False):
                return False
        case Protocol.TYPED_PHRASE:
            click.echo(click.style("High-risk cleanup of many files.", fg="red", bold=True))
            answer = click.prompt(f"Type {gate.required_phrase} to confirm", default="", show_default=False)
            gate.paste(answer)
            if not gate.phrase_matches:
                click.echo("Confirmation phrase did not match.")
                return False
    return gate.request_confirm()


def _print_report(report: CleanupReport) -> None:
    verb = "Would free" if report.was_dry_run else "Freed"
    click.echo(
        f"{verb} {click.style(bytes_to_human(report.deleted_size), fg='green', bold=True)} "
        f"from {report.deleted_count:,} files"
    )
    if report.skipped_count:
        click.echo(f"Skipped {report.skipped_count:,} files")
    for errors in group_errors(report.error_records).values():
        click.echo(
            f"  {click.style('!', fg='yellow')} {errors[0].label} ({len(errors)}): {errors[0].user_message}"
        )
    if report.was_dry_run:
        click.echo("(dry run, no files were deleted)")


# ── stats ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--period", "-p", default="all", type=click.Choice(PERIODS))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(period: str, as_json: bool) -> None:
    """Show space freed statistics."""
    tracker = Tracker()
    data = tracker.get_stats(period)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"\nStatistics ({period})\n")
    click.echo(f"  Bytes freed:    {click.style(bytes_to_human(data['bytes_freed']), fg='green', bold=True)}")
    click.echo(f"  Files removed:  {data['files_removed']:,}")
    click.echo(f"  Errors:         {data['errors']:,}")
    click.echo(f"  Sessions:       {data['session_count']}")
    click.echo(f"  Lifetime total: {click.style(bytes_to_human(data['lifetime_bytes_freed']), fg='cyan', bold=True)}")
    last = tracker.get_last_clean_time()
    if last is not None:
        click.echo(f"  Last cleanup:   {format_relative_time(last)}")

    if data["per_category"]:
        click.echo("\n  Per-category breakdown:")
        for category, freed in sorted(data["per_category"].items(), key=lambda x: x[1], reverse=True):
            click.echo(f"    {category_label(category):25s} {bytes_to_human(freed):>10s}")
    click.echo()


# ── scanners ─────────────────────────────────────────────────────────────

@main.command("scanners")
def scanners_cmd() -> None:
    """List all registered scanners with status."""
    engine = _build_engine(_load_config())
    for scanner in engine.registry.get_all():
        reason = scanner.unavailable_reason
        status = click.style("available", fg="green") if reason is None else click.style(reason, fg="bright_black")
        click.echo(f"  {scanner.id:25s} {scanner.category:18s} {status}")
        click.echo(f"    {scanner.description}")
