"""
Exception hierarchy for Minecraft Mod Syncer.

Recoverable errors are surfaced to the user and the session continues.
Fatal errors abort the current operation without touching on-disk state.
Partial transfer failures are never raised; they are reported per unit.
"""


class ModSyncError(Exception):
    """Base class for all syncer errors."""

    pass


# ----------------------------------------------------------------------------
# Transfer errors
# ----------------------------------------------------------------------------

class TransferError(ModSyncError):
    """A download or delete unit failed and retrying won't help."""

    pass


class TransientTransferError(TransferError):
    """A transfer failed in a way that may succeed on retry (timeout, 5xx, I/O)."""

    pass


class TransferCancelled(ModSyncError):
    """Raised inside a unit when the user cancelled the batch."""

    pass


# ----------------------------------------------------------------------------
# Recoverable, user-facing
# ----------------------------------------------------------------------------

class ServerUnreachableError(ModSyncError):
    """The server address could not be reached or returned garbage."""

    pass


class BranchNotFoundError(ModSyncError):
    """The requested branch doesn't exist on the server."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"Branch '{branch}' not found on server")


class ProfileNotFoundError(ModSyncError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Profile '{name}' doesn't exist")


class ProfileExistsError(ModSyncError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Profile '{name}' already exists")


class InvalidModsPathError(ModSyncError):
    """The configured path isn't a usable mods folder."""

    def __init__(self, path, reason: str = "not a minecraft mods folder"):
        self.path = path
        super().__init__(f"{path}: {reason}")


class PlanError(ModSyncError):
    """The user's confirmation doesn't fit the proposed plan."""

    pass


class StaleResultError(ModSyncError):
    """A reconciliation result from another session or an older refresh was used."""

    pass


class SyncInProgressError(ModSyncError):
    """Another sync already owns this mods directory."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"A sync is already running for {path}")


# ----------------------------------------------------------------------------
# Fatal
# ----------------------------------------------------------------------------

class ProfileStoreError(ModSyncError):
    """The profile store can't be read or written."""

    pass


class OverrideStoreError(ModSyncError):
    """A profile's keep-file can't be read or written."""

    pass


class ModsPathError(ModSyncError):
    """The mods directory is missing or not writable."""

    pass
