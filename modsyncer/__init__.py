"""
Minecraft Mod Syncer - keep a local mods folder in line with a server branch.

This package reconciles a local mods directory against the manifest a server
publishes per branch, then downloads what is missing and removes what is no
longer wanted, honouring the user's optional-mod and keep choices.

Import from submodules directly:
    from modsyncer.config.profiles import ProfileManager
    from modsyncer.manifest import ManifestClient, Branch
    from modsyncer.sync import SyncSession, reconcile
"""


def _get_version():
    """Read version from VERSION file."""
    from pathlib import Path
    version_file = Path(__file__).parent.parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    return "0.0.0"


__version__ = _get_version()
