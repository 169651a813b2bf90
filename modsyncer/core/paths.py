"""
Filesystem locations for Minecraft Mod Syncer.

Covers the per-user config directory (profiles, keep-files, log) and
auto-detection of a Minecraft mods folder.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from .constants import APP_DIR_NAME


def get_config_dir() -> Path:
    """
    Get the directory holding profiles.json, keep-files and the log.

    MODSYNCER_CONFIG_DIR overrides the OS default.
    """
    override = os.environ.get("MODSYNCER_CONFIG_DIR")
    if override:
        return Path(override)

    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_DIR_NAME


def get_profiles_path() -> Path:
    return get_config_dir() / "profiles.json"


def get_overrides_dir() -> Path:
    return get_config_dir() / "overrides"


def get_log_path() -> Path:
    return get_config_dir() / "modsyncer.log"


def get_default_mods_folder() -> Optional[Path]:
    """
    Get the official Minecraft launcher's mods folder for this OS.

    Doesn't check whether the folder exists.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if not appdata:
            return None
        return Path(appdata) / ".minecraft" / "mods"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "minecraft" / "mods"
    if sys.platform.startswith("linux"):
        return Path.home() / ".minecraft" / "mods"
    return None


def is_mods_folder(path: Path) -> bool:
    """A valid mods folder is an existing directory named 'mods'."""
    return path.name == "mods" and path.is_dir()


def find_mods_folder(start: Optional[Path] = None) -> Optional[Path]:
    """
    Try to find a mods folder automatically.

    Checks ./mods, then ./.minecraft/mods, lastly the launcher's default.
    """
    start = start or Path(".")

    for candidate in (start / "mods", start / ".minecraft" / "mods"):
        if candidate.is_dir():
            return candidate.resolve()

    default = get_default_mods_folder()
    if default and is_mods_folder(default):
        return default
    return None
