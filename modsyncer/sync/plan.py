"""
Two-phase sync planning for Minecraft Mod Syncer.

propose() turns a reconciliation result into a pending plan with the default
choices; the presentation layer shows it, collects the user's optional
selections, keep flags and explicit removals, and confirm() produces the
final plan the orchestrator executes.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..config.overrides import OverrideRecord
from ..core.constants import BUNDLE_SIZE_THRESHOLD
from ..core.errors import PlanError
from ..core.formatting import sort_by_name
from ..manifest.manifest import Branch, TransferMode
from .reconcile import ReconciliationResult, reconcile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingPlan:
    """A proposal awaiting user confirmation."""
    result: ReconciliationResult

    @property
    def branch(self) -> Branch:
        return self.result.branch

    @property
    def downloads(self) -> tuple:
        return self.result.to_download

    @property
    def deletions(self) -> tuple:
        """Files deleted if the user confirms without changes."""
        return tuple(c.file for c in self.result.to_delete if c.selected_by_default)

    @property
    def optional_choices(self) -> tuple:
        """Optional entries the user may toggle, sorted by name."""
        return self.branch.optional_entries


@dataclass(frozen=True)
class SyncPlan:
    """The confirmed work for one sync pass."""
    branch: Branch
    mode: TransferMode
    overrides: OverrideRecord
    downloads: tuple = field(default_factory=tuple)
    deletions: tuple = field(default_factory=tuple)
    session_id: str = ""

    @property
    def download_size(self) -> int:
        return sum(e.size for e in self.downloads)

    @property
    def is_empty(self) -> bool:
        return not self.downloads and not self.deletions


def choose_transfer_mode(branch: Branch, downloads: Iterable) -> TransferMode:
    """
    Pick bulk or per-file transfer from what the branch offers.

    The bundle is used when the files to fetch add up to more than 95% of it.
    """
    downloads = list(downloads)
    if not downloads or branch.bundle is None:
        return TransferMode.PER_FILE
    total = sum(e.size for e in downloads)
    if total > branch.bundle.size * BUNDLE_SIZE_THRESHOLD:
        return TransferMode.BULK
    return TransferMode.PER_FILE


def propose(result: ReconciliationResult) -> PendingPlan:
    """Wrap a reconciliation result as a pending plan with default choices."""
    for warning in result.warnings:
        logger.warning(warning)
    return PendingPlan(result=result)


def confirm(
    pending: PendingPlan,
    overrides: Optional[OverrideRecord] = None,
    remove: Iterable[str] = (),
) -> SyncPlan:
    """
    Apply the user's final choices to a pending plan.

    Args:
        pending: Plan returned by propose()
        overrides: The user's final selections and keep flags for the branch
                   (defaults to the ones the result was computed with)
        remove: Names the user explicitly wants deleted this session: kept
                files (their keep flag is dropped) or unselected optional mods

    Raises PlanError if the choices don't fit the branch or the proposal.
    """
    result = pending.result
    branch = result.branch
    overrides = overrides or result.overrides
    remove = set(remove)

    if overrides.branch != branch.name:
        raise PlanError(f"Overrides are for branch '{overrides.branch}', plan is for '{branch.name}'")

    not_optional = overrides.optionals_selected - branch.optional_names
    if not_optional:
        required = not_optional & branch.required_names
        if required:
            raise PlanError(f"Cannot select required mods as optional: {', '.join(sort_by_name(list(required)))}")
        raise PlanError(f"Not optional mods of '{branch.name}': {', '.join(sort_by_name(list(not_optional)))}")

    conflicting = remove & overrides.optionals_selected
    if conflicting:
        raise PlanError(f"Cannot both select and remove: {', '.join(sort_by_name(list(conflicting)))}")

    final_overrides = OverrideRecord(
        branch=branch.name,
        optionals_selected=overrides.optionals_selected,
        keep_flagged=overrides.keep_flagged - remove,
    )
    final = reconcile(branch, result.local_files, final_overrides, session_id=result.session_id)

    candidates = {c.name for c in final.to_delete}
    unknown = remove - candidates
    if unknown:
        raise PlanError(f"Not deletion candidates: {', '.join(sort_by_name(list(unknown)))}")

    deletions = tuple(c.file for c in final.to_delete if c.selected_by_default or c.name in remove)
    mode = choose_transfer_mode(branch, final.to_download)

    plan = SyncPlan(
        branch=branch,
        mode=mode,
        overrides=final_overrides,
        downloads=final.to_download,
        deletions=deletions,
        session_id=result.session_id,
    )
    logger.info(
        "Plan for '%s': %d downloads (%s), %d deletions",
        branch.name, len(plan.downloads), mode.value, len(plan.deletions),
    )
    return plan
