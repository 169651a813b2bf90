"""
Branch manifests for Minecraft Mod Syncer.

The manifest is the server's listing of a branch's mods, fetched fresh per sync.
"""

from .manifest import Branch, BundleInfo, ModEntry, TransferMode
from .fetch import ManifestClient, normalize_address

__all__ = [
    "Branch",
    "BundleInfo",
    "ModEntry",
    "TransferMode",
    "ManifestClient",
    "normalize_address",
]
