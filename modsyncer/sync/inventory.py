"""
Local mods folder scanning for Minecraft Mod Syncer.

Enumerates the mod files present on disk. Recomputed on every sync pass,
never persisted.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from ..core.constants import MOD_EXTENSION, TEMP_PREFIX
from ..core.formatting import sort_by_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFile:
    """A mod file present in the mods folder."""
    name: str
    size: int
    modified: float = 0.0


def is_mod_file(name: str) -> bool:
    """Only .jar files (case-insensitive) count as mods; partial downloads don't."""
    return name.lower().endswith(MOD_EXTENSION) and not name.startswith(TEMP_PREFIX)


def scan_local_mods(mods_path: Path) -> List[LocalFile]:
    """
    Scan the mods folder (not recursive) and return its mod files, sorted by name.

    Uses os.scandir so each entry is stat'ed once.
    Raises OSError if the folder itself can't be listed.
    """
    local_files = []
    with os.scandir(mods_path) as entries:
        for entry in entries:
            if not entry.is_file(follow_symlinks=True) or not is_mod_file(entry.name):
                continue
            try:
                st = entry.stat(follow_symlinks=True)
            except OSError as e:
                logger.warning("Cannot stat %s: %s", entry.path, e)
                continue
            local_files.append(LocalFile(name=entry.name, size=st.st_size, modified=st.st_mtime))

    logger.debug("Found %d mods in %s", len(local_files), mods_path)
    return sort_by_name(local_files, key=lambda f: f.name)


def find_partial_downloads(mods_path: Path) -> List[Tuple[Path, int]]:
    """
    Find partial download files (files with _download_ prefix).

    These are leftovers of interrupted transfers and can't be resumed.

    Returns:
        List of (Path, size) tuples for partial download files
    """
    partial_files = []
    if not mods_path.exists():
        return partial_files

    for f in mods_path.glob(f"{TEMP_PREFIX}*"):
        if f.is_file():
            try:
                partial_files.append((f, f.stat().st_size))
            except OSError:
                partial_files.append((f, 0))

    return partial_files
