"""
Reconciliation for Minecraft Mod Syncer.

Diffs a branch manifest against the local mods folder and the user's
overrides. Pure: never touches the filesystem or the network, and equal
inputs always give an equal result (every list is sorted by filename).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..config.overrides import OverrideRecord
from ..core.formatting import sort_by_name
from ..manifest.manifest import Branch
from .inventory import LocalFile


class DeleteReason(Enum):
    ORPHANED = "orphaned"  # not listed by the branch at all
    OPTIONAL = "optional"  # an optional mod the user hasn't selected


@dataclass(frozen=True)
class DeleteCandidate:
    """A local file that the branch doesn't want."""
    file: LocalFile
    reason: DeleteReason

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def selected_by_default(self) -> bool:
        """Orphans are removed unless kept; unselected optionals only on request."""
        return self.reason is DeleteReason.ORPHANED


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of one reconciliation pass. Ephemeral, recomputed every sync."""
    branch: Branch
    overrides: OverrideRecord
    to_download: tuple = field(default_factory=tuple)
    to_delete: tuple = field(default_factory=tuple)
    kept: tuple = field(default_factory=tuple)
    available_optionals: tuple = field(default_factory=tuple)
    unchanged: frozenset = field(default_factory=frozenset)
    stale_optionals: tuple = field(default_factory=tuple)
    local_files: tuple = field(default_factory=tuple)
    session_id: str = ""

    @property
    def download_size(self) -> int:
        return sum(e.size for e in self.to_download)

    @property
    def is_synced(self) -> bool:
        return not self.to_download and not any(c.selected_by_default for c in self.to_delete)

    @property
    def warnings(self) -> tuple:
        return tuple(
            f"Optional mod '{name}' is no longer offered by branch '{self.branch.name}'"
            for name in self.stale_optionals
        )


def reconcile(
    branch: Branch,
    local_files: Iterable[LocalFile],
    overrides: OverrideRecord,
    session_id: str = "",
) -> ReconciliationResult:
    """
    Compute what to download and what to delete.

    Download: required entries and selected optional entries without a local
    file of matching name and size (a size mismatch means re-download).

    Delete: local files no entry matches (ORPHANED) and local copies of
    optional entries the user hasn't selected (OPTIONAL). Keep-flagged files
    are never delete candidates; the orphans among them are listed in `kept`.
    """
    local_files = sort_by_name(list(local_files), key=lambda f: f.name)
    local_by_name = {f.name: f for f in local_files}
    selected = overrides.optionals_selected
    keep = overrides.keep_flagged

    to_download = []
    available = []
    unchanged = set()

    for entry in branch.client_entries:
        local = local_by_name.get(entry.name)
        present = local is not None and entry.matches(local.size)

        if entry.required or entry.name in selected:
            if present:
                unchanged.add(entry.name)
            else:
                to_download.append(entry)
        elif local is None:
            available.append(entry)

    to_delete = []
    kept = []
    for local in local_files:
        entry = branch.get(local.name)
        if entry is not None and (entry.required or local.name in selected):
            continue
        if local.name in keep:
            kept.append(local)
        elif entry is None:
            to_delete.append(DeleteCandidate(local, DeleteReason.ORPHANED))
        else:
            to_delete.append(DeleteCandidate(local, DeleteReason.OPTIONAL))

    stale = set(overrides.stale_optionals) | (selected - branch.optional_names)

    return ReconciliationResult(
        branch=branch,
        overrides=overrides,
        to_download=tuple(to_download),
        to_delete=tuple(to_delete),
        kept=tuple(kept),
        available_optionals=tuple(available),
        unchanged=frozenset(unchanged),
        stale_optionals=tuple(sort_by_name(list(stale))),
        local_files=tuple(local_files),
        session_id=session_id,
    )
