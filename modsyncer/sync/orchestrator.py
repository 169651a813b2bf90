"""
Transfer orchestration for Minecraft Mod Syncer.

Executes a confirmed SyncPlan against the mods folder: downloads (one unit per
file, or a single bundle that is extracted afterwards) and deletions, on a
bounded pool of concurrent workers with per-unit retries.
"""

import asyncio
import logging
import os
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..core.constants import MAX_ATTEMPTS, MAX_WORKERS, RETRY_BACKOFF, TEMP_PREFIX
from ..core.errors import (
    ModsPathError,
    SyncInProgressError,
    TransferCancelled,
    TransferError,
    TransientTransferError,
)
from ..core.files import remove_quietly
from ..core.formatting import mod_family, sanitize_filename
from ..core.progress import CancelToken
from ..manifest.manifest import TransferMode
from .extractor import extract_members
from .inventory import LocalFile, find_partial_downloads
from .plan import SyncPlan
from .progress import EventState, ProgressEvent, TransferResult
from .purger import delete_files, delete_mod
from .transport import ByteStreamer
from .units import Category, TransferUnit, UnitState

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"

_active_dirs = set()
_active_lock = threading.Lock()


@contextmanager
def claim_mods_dir(mods_path: Path):
    """Hold exclusive ownership of a mods directory for one transfer run."""
    key = os.path.normcase(str(mods_path.resolve()))
    with _active_lock:
        if key in _active_dirs:
            raise SyncInProgressError(mods_path)
        _active_dirs.add(key)
    try:
        yield
    finally:
        with _active_lock:
            _active_dirs.discard(key)


def check_mods_dir(mods_path: Path):
    """Raise ModsPathError unless mods_path is an existing, writable directory."""
    if not mods_path.is_dir():
        raise ModsPathError(f"Mods folder does not exist: {mods_path}")
    if not os.access(mods_path, os.W_OK):
        raise ModsPathError(f"Mods folder is not writable: {mods_path}")


class TransferOrchestrator:
    """
    Runs confirmed plans against one mods directory.

    Only one run per directory may be active at a time (process-wide).
    A failed unit never aborts its siblings; every failure ends up in the
    TransferResult with its reason.
    """

    def __init__(
        self,
        mods_path: Path,
        streamer_factory: Callable = ByteStreamer,
        max_workers: int = MAX_WORKERS,
        max_attempts: int = MAX_ATTEMPTS,
        backoff: float = RETRY_BACKOFF,
    ):
        self.mods_path = Path(mods_path)
        self.streamer_factory = streamer_factory
        self.max_workers = max_workers
        self.max_attempts = max_attempts
        self.backoff = backoff

    async def execute(
        self,
        plan: SyncPlan,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransferResult:
        """
        Execute a plan.

        Raises ModsPathError if the mods folder is missing or not writable,
        SyncInProgressError if another run owns it. Everything else is
        reported through the returned TransferResult.
        """
        cancel = cancel or CancelToken()
        check_mods_dir(self.mods_path)

        with claim_mods_dir(self.mods_path):
            partials = find_partial_downloads(self.mods_path)
            if partials:
                cleaned = delete_files(partials)
                logger.info("Cleaned up %d partial download(s) in %s", cleaned, self.mods_path)

            result = TransferResult()
            if plan.is_empty:
                return result

            logger.info(
                "Starting transfer: %d downloads (%s), %d deletions",
                len(plan.downloads), plan.mode.value, len(plan.deletions),
            )
            async with self.streamer_factory() as streamer:
                run = _TransferRun(self, plan, streamer, on_event, cancel, result)
                await run.execute()

            result.cancelled = cancel.cancelled
            logger.info(
                "Transfer finished: %d/%d downloads, %d/%d deletions%s",
                result.downloads_succeeded, result.downloads_succeeded + result.downloads_failed,
                result.deletes_succeeded, result.deletes_succeeded + result.deletes_failed,
                " (cancelled)" if result.cancelled else "",
            )
            return result

    def run(
        self,
        plan: SyncPlan,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransferResult:
        """Blocking wrapper around execute(). Ctrl+C cancels the run cleanly."""
        cancel = cancel or CancelToken()
        original_handler = None

        def handle_interrupt(signum, frame):
            if not cancel.cancelled:
                logger.info("Interrupt received, cancelling transfer")
            cancel.cancel()

        try:
            original_handler = signal.signal(signal.SIGINT, handle_interrupt)
        except ValueError:
            # Not on the main thread; caller handles cancellation
            pass

        try:
            return asyncio.run(self.execute(plan, on_event, cancel))
        finally:
            if original_handler is not None:
                signal.signal(signal.SIGINT, original_handler)


class _TransferRun:
    """State of a single execute() call."""

    def __init__(self, orchestrator: TransferOrchestrator, plan: SyncPlan, streamer,
                 on_event, cancel: CancelToken, result: TransferResult):
        self.mods_path = orchestrator.mods_path
        self.max_attempts = orchestrator.max_attempts
        self.backoff = orchestrator.backoff
        self.plan = plan
        self.streamer = streamer
        self.on_event = on_event
        self.cancel = cancel
        self.result = result
        self.semaphore = asyncio.Semaphore(orchestrator.max_workers)

        # download name -> set when its outcome is known
        self.download_done: Dict[str, asyncio.Event] = {e.name: asyncio.Event() for e in plan.downloads}
        self.download_ok: Dict[str, bool] = {}

    def emit(self, unit: TransferUnit, state: EventState, reason: str = ""):
        if self.on_event is None:
            return
        self.on_event(ProgressEvent(
            unit=unit.unit_id,
            category=unit.category,
            state=state,
            bytes_done=unit.bytes_done,
            bytes_total=unit.total_bytes,
            reason=reason,
            attempt=unit.attempts,
        ))

    def finish(self, unit: TransferUnit, counted: bool = True):
        """Emit the terminal event for a unit and record it in the result."""
        if unit.succeeded:
            self.emit(unit, EventState.SUCCEEDED)
        else:
            self.emit(unit, EventState.FAILED, unit.reason)
            logger.warning("%s %s failed: %s", unit.category.value, unit.unit_id, unit.reason)
        if counted:
            self.result.record(unit.category, unit.unit_id, unit.succeeded, unit.reason)

    def mark_downloaded(self, name: str, ok: bool):
        self.download_ok[name] = ok
        self.download_done[name].set()

    def new_unit(self, unit_id: str, category: Category, total_bytes: int = 0) -> TransferUnit:
        unit = TransferUnit(unit_id, category, total_bytes=total_bytes, max_attempts=self.max_attempts)
        self.emit(unit, EventState.QUEUED)
        return unit

    async def execute(self):
        plan = self.plan
        tasks = []

        if plan.mode is TransferMode.PER_FILE:
            for entry in plan.downloads:
                unit = self.new_unit(entry.name, Category.DOWNLOAD, entry.size)
                tasks.append(self._download_file(unit, entry))
        elif plan.mode is TransferMode.BULK:
            if plan.downloads:
                tasks.append(self._download_bundle(plan.downloads))
        else:
            raise ValueError(f"Unknown transfer mode: {plan.mode}")

        for local in plan.deletions:
            unit = self.new_unit(local.name, Category.DELETE, local.size)
            tasks.append(self._delete(unit, local, self._replacements_for(local)))

        await asyncio.gather(*tasks)

    def _replacements_for(self, local: LocalFile) -> List[str]:
        """Downloads that replace this file (same mod, different version)."""
        family = mod_family(local.name)
        return [e.name for e in self.plan.downloads if e.name != local.name and mod_family(e.name) == family]

    async def _drive(self, unit: TransferUnit, work) -> bool:
        """Run work(unit) through the retry state machine on a worker slot."""
        async with self.semaphore:
            while not unit.done:
                if self.cancel.cancelled:
                    unit.abandon(CANCELLED)
                    break
                unit.start()
                self.emit(unit, EventState.IN_PROGRESS)
                try:
                    await work(unit)
                except TransferCancelled:
                    unit.abandon(CANCELLED)
                except TransientTransferError as e:
                    unit.fail(str(e), retryable=True)
                except TransferError as e:
                    unit.fail(str(e), retryable=False)
                except OSError as e:
                    unit.fail(f"I/O error: {e}", retryable=True)
                else:
                    unit.succeed()

                if unit.state is UnitState.RETRYING:
                    logger.info(
                        "Retrying %s (attempt %d/%d): %s",
                        unit.unit_id, unit.attempts + 1, unit.max_attempts, unit.reason,
                    )
                    await asyncio.sleep(self.backoff * unit.attempts)
        return unit.succeeded

    async def _fetch(self, url: str, dest: Path, unit: TransferUnit, expected_size: int):
        """Stream url into dest. dest is removed again if anything goes wrong."""
        written = 0
        try:
            self.cancel.raise_if_cancelled()
            with open(dest, "wb") as f:
                async for chunk in self.streamer.iter_chunks(url):
                    self.cancel.raise_if_cancelled()
                    f.write(chunk)
                    written += len(chunk)
                    unit.bytes_done = written
                    self.emit(unit, EventState.IN_PROGRESS)
            if expected_size > 0 and written != expected_size:
                raise TransientTransferError(f"size mismatch: got {written} bytes, expected {expected_size}")
        except BaseException:
            remove_quietly(dest)
            raise
        self.result.bytes_downloaded += written

    async def _download_file(self, unit: TransferUnit, entry):
        final_path = self.mods_path / entry.name
        tmp_path = self.mods_path / f"{TEMP_PREFIX}{entry.name}"

        async def work(unit):
            await self._fetch(entry.url, tmp_path, unit, entry.size)
            try:
                os.replace(tmp_path, final_path)
            except OSError:
                remove_quietly(tmp_path)
                raise

        try:
            ok = await self._drive(unit, work)
        finally:
            remove_quietly(tmp_path)
        self.finish(unit)
        self.mark_downloaded(entry.name, ok)

    async def _download_bundle(self, entries):
        """Fetch the branch bundle once and extract the wanted entries from it."""
        branch = self.plan.branch
        bundle = branch.bundle
        archive = self.mods_path / f"{TEMP_PREFIX}{sanitize_filename(branch.name)}.zip"
        wanted = {e.name: e.size for e in entries}
        entry_units = {e.name: self.new_unit(e.name, Category.DOWNLOAD, e.size) for e in entries}
        unit = self.new_unit(f"bundle:{branch.name}", Category.DOWNLOAD, bundle.size if bundle else 0)
        outcome = {}
        loop = asyncio.get_running_loop()

        async def work(unit):
            if bundle is None:
                raise TransferError("branch has no bundle")
            try:
                await self._fetch(bundle.url, archive, unit, bundle.size)
                self.cancel.raise_if_cancelled()
                extracted, failed = await loop.run_in_executor(
                    None, extract_members, archive, self.mods_path, wanted, self.cancel
                )
            finally:
                remove_quietly(archive)
            outcome["extracted"] = extracted
            outcome["failed"] = failed

        try:
            await self._drive(unit, work)
        finally:
            remove_quietly(archive)
        self.finish(unit, counted=False)

        extracted = set(outcome.get("extracted", ()))
        failed = outcome.get("failed", {})
        for name, entry_unit in entry_units.items():
            if name in extracted:
                entry_unit.start()
                entry_unit.bytes_done = entry_unit.total_bytes
                entry_unit.succeed()
            else:
                entry_unit.abandon(failed.get(name) or unit.reason or "not extracted")
            self.finish(entry_unit)
            self.mark_downloaded(name, entry_unit.succeeded)

    async def _delete(self, unit: TransferUnit, local: LocalFile, replacements: List[str]):
        if replacements:
            # Never remove the old version before its replacement is in place
            await asyncio.gather(*(self.download_done[name].wait() for name in replacements))
            failed = [name for name in replacements if not self.download_ok.get(name)]
            if failed:
                reason = CANCELLED if self.cancel.cancelled else f"replacement not downloaded: {', '.join(failed)}"
                unit.abandon(reason)
                self.finish(unit)
                return

        loop = asyncio.get_running_loop()

        async def work(unit):
            self.cancel.raise_if_cancelled()
            await loop.run_in_executor(None, delete_mod, self.mods_path, local.name)

        await self._drive(unit, work)
        self.finish(unit)
