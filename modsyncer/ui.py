"""
Terminal output for Minecraft Mod Syncer.

Renders reconciliation results and transfer progress. Everything that prints
lives here or in app.py; the engine below only logs.
"""

import os
import sys
import threading
import time

from .core.formatting import format_duration, format_size, format_speed
from .sync.progress import EventState, ProgressEvent, TransferResult
from .sync.reconcile import DeleteReason, ReconciliationResult
from .sync.units import Category


class Colors:
    RESET = "\x1b[0m"
    BOLD = "\x1b[1m"
    DIM = "\x1b[2m"
    GREEN = "\x1b[38;2;74;222;128m"
    RED = "\x1b[38;2;248;113;113m"
    YELLOW = "\x1b[38;2;250;204;21m"
    MUTED = "\x1b[38;2;148;163;184m"


def use_color() -> bool:
    return sys.stdout.isatty() and "NO_COLOR" not in os.environ


def paint(text: str, color: str) -> str:
    if not use_color():
        return text
    return f"{color}{text}{Colors.RESET}"


def get_terminal_width() -> int:
    """Get terminal width, with fallback."""
    try:
        return os.get_terminal_size().columns
    except OSError:
        return 80


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[:max(0, width - 3)] + "..."


def print_reconciliation(result: ReconciliationResult):
    """Print what a sync of this result would do."""
    branch = result.branch
    print(f"Branch {paint(branch.name, Colors.BOLD)}: "
          f"{len(branch.required_entries)} required, {len(branch.optional_entries)} optional mods, "
          f"{format_size(branch.total_size)} in total")

    for warning in result.warnings:
        print(paint(f"  WARN: {warning}", Colors.YELLOW))

    if result.is_synced and not result.to_delete:
        print(paint("  Everything is up to date.", Colors.GREEN))

    if result.to_download:
        print(f"\n  To download ({len(result.to_download)}, {format_size(result.download_size)}):")
        for entry in result.to_download:
            tag = "" if entry.required else paint(" [optional]", Colors.MUTED)
            print(f"    + {entry.name}{tag}")

    if result.to_delete:
        print(f"\n  To delete ({len(result.to_delete)}):")
        for candidate in result.to_delete:
            if candidate.reason is DeleteReason.ORPHANED:
                print(f"    - {candidate.name}")
            else:
                print(paint(f"    - {candidate.name} [optional, kept unless --remove]", Colors.MUTED))

    if result.kept:
        print(f"\n  Kept ({len(result.kept)}):")
        for local in result.kept:
            print(paint(f"    = {local.name}", Colors.MUTED))

    if result.available_optionals:
        print(f"\n  Optional mods not installed ({len(result.available_optionals)}):")
        for entry in result.available_optionals:
            print(paint(f"    ? {entry.name} ({format_size(entry.size)})", Colors.MUTED))


class TransferProgress:
    """
    on_event callback that prints one line per finished unit.

    Completed items are numbered against the total; failures are printed with
    their reason as they happen.
    """

    def __init__(self, total_downloads: int, total_deletes: int):
        self.total = total_downloads + total_deletes
        self.completed = 0
        self.start_time = time.time()
        self.lock = threading.Lock()

    def __call__(self, event: ProgressEvent):
        with self.lock:
            if event.state in (EventState.QUEUED, EventState.IN_PROGRESS):
                return
            if event.unit.startswith("bundle:"):
                # Entries of the bundle report on their own
                if event.state is EventState.FAILED:
                    print(paint(f"  ERR: bundle download failed - {event.reason}", Colors.RED))
                return

            self.completed += 1
            pct = (self.completed / self.total * 100) if self.total > 0 else 0
            verb = "deleted" if event.category is Category.DELETE else "got"
            core = f"  {pct:5.1f}% ({self.completed}/{self.total})"
            remaining = get_terminal_width() - len(core) - 5

            if event.state is EventState.SUCCEEDED:
                line = f"{core}  {verb} {event.unit}"
                print(truncate(line, len(core) + remaining) if remaining > 10 else core)
            else:
                print(paint(f"  ERR: {event.unit} - {event.reason}", Colors.RED))

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time


def print_transfer_summary(result: TransferResult, elapsed: float):
    parts = [f"{result.downloads_succeeded} downloaded", f"{result.deletes_succeeded} deleted"]
    if result.failed:
        parts.append(paint(f"{result.failed} failed", Colors.RED))
    speed = result.bytes_downloaded / elapsed if elapsed > 0 else 0
    print()
    print(f"  {', '.join(parts)} in {format_duration(elapsed)} "
          f"({format_size(result.bytes_downloaded)}, {format_speed(speed)})")
    if result.cancelled:
        print(paint("  Cancelled. Unfinished files were discarded.", Colors.YELLOW))
    for unit, reason in sorted(result.failures.items()):
        print(paint(f"    {unit}: {reason}", Colors.RED))


def show_confirmation(question: str) -> bool:
    """Ask a yes/no question on the terminal. Defaults to no."""
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")

