"""
Sync session: the context shared by one active profile.

Built when a profile is activated, discarded on switch or exit. Owns the
manifest client, the override store and the orchestrator for that profile,
and tracks the latest reconciliation so that stale proposals are rejected.
"""

import logging
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config.overrides import OverrideRecord, OverrideStore
from ..config.profiles import Profile
from ..core.errors import InvalidModsPathError, StaleResultError
from ..core.paths import find_mods_folder, get_overrides_dir, is_mods_folder
from ..core.progress import CancelToken
from ..manifest.fetch import ManifestClient
from .inventory import scan_local_mods
from .orchestrator import TransferOrchestrator
from .plan import PendingPlan, SyncPlan, confirm, propose
from .progress import ProgressEvent, TransferResult
from .reconcile import ReconciliationResult, reconcile

logger = logging.getLogger(__name__)


def resolve_mods_path(profile: Profile) -> Path:
    """
    The profile's mods folder, or an auto-detected one when it has none.

    Raises InvalidModsPathError unless the result is an existing 'mods' directory.
    """
    if profile.mods_path:
        path = Path(profile.mods_path).expanduser()
    else:
        path = find_mods_folder()
        if path is None:
            raise InvalidModsPathError("<auto>", "no mods folder found, set one in the profile")
    if not path.is_dir():
        raise InvalidModsPathError(path, "folder does not exist")
    if not is_mods_folder(path):
        raise InvalidModsPathError(path)
    return path


class SyncSession:
    """
    Usage:
        session = SyncSession(profile)
        result = session.refresh()
        pending = session.propose(result)
        plan = session.confirm(pending, overrides, remove=[...])
        transfer = session.run(plan)
    """

    def __init__(
        self,
        profile: Profile,
        client: Optional[ManifestClient] = None,
        override_store: Optional[OverrideStore] = None,
        orchestrator: Optional[TransferOrchestrator] = None,
    ):
        self.profile = profile
        self.client = client or ManifestClient(profile.address)
        self.override_store = override_store or OverrideStore(get_overrides_dir())
        self._orchestrator = orchestrator
        self.session_id = uuid.uuid4().hex
        self._latest: Optional[ReconciliationResult] = None
        self._generation = 0
        logger.info("Opened session %s for profile '%s'", self.session_id[:8], profile.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"SyncSession({self.profile.name!r}, {self.session_id[:8]})"

    @property
    def mods_path(self) -> Path:
        return resolve_mods_path(self.profile)

    @property
    def orchestrator(self) -> TransferOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = TransferOrchestrator(self.mods_path)
        return self._orchestrator

    def branch_names(self) -> list[str]:
        return self.client.get_branch_names()

    def refresh(self, branch: Optional[str] = None) -> ReconciliationResult:
        """
        Fetch the branch manifest, scan the mods folder and reconcile.

        Uses the profile's branch when none is given. Raises
        BranchNotFoundError, ServerUnreachableError, InvalidModsPathError.
        """
        branch_name = branch or self.profile.branch
        if not branch_name:
            raise ValueError("No branch selected")

        mods_path = self.mods_path
        manifest = self.client.get_branch(branch_name)
        overrides = self.override_store.load(self.profile.name, manifest)
        try:
            local_files = scan_local_mods(mods_path)
        except OSError as e:
            raise InvalidModsPathError(mods_path, f"cannot list folder: {e}") from e

        self._generation += 1
        result = reconcile(manifest, local_files, overrides, session_id=self._token())
        self._latest = result
        logger.info(
            "Reconciled '%s': %d to download, %d delete candidates, %d kept, %d unchanged",
            branch_name, len(result.to_download), len(result.to_delete),
            len(result.kept), len(result.unchanged),
        )
        return result

    def _token(self) -> str:
        return f"{self.session_id}:{self._generation}"

    def _check_current(self, session_id: str):
        if self._latest is None or session_id != self._token():
            raise StaleResultError("Result is out of date, refresh before syncing")

    def propose(self, result: ReconciliationResult) -> PendingPlan:
        self._check_current(result.session_id)
        return propose(result)

    def confirm(
        self,
        pending: PendingPlan,
        overrides: Optional[OverrideRecord] = None,
        remove: Iterable[str] = (),
    ) -> SyncPlan:
        self._check_current(pending.result.session_id)
        return confirm(pending, overrides, remove)

    async def execute(
        self,
        plan: SyncPlan,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransferResult:
        """Run the plan's transfers, then persist the plan's overrides."""
        self._check_current(plan.session_id)
        self._latest = None
        result = await self.orchestrator.execute(plan, on_event, cancel)
        self.override_store.save(self.profile.name, plan.overrides)
        return result

    def run(
        self,
        plan: SyncPlan,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> TransferResult:
        """Blocking variant of execute() with Ctrl+C cancellation."""
        self._check_current(plan.session_id)
        self._latest = None
        result = self.orchestrator.run(plan, on_event, cancel)
        self.override_store.save(self.profile.name, plan.overrides)
        return result

    def close(self):
        """Drop cached state and release the HTTP session."""
        self._latest = None
        session = getattr(self.client, "session", None)
        if session is not None:
            session.close()
        logger.info("Closed session %s", self.session_id[:8])
