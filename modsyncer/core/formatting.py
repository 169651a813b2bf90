"""
Formatting and sanitization utilities for Minecraft Mod Syncer.
"""

import re
import unicodedata
from typing import Any, Callable, List, Optional


# ============================================================================
# Filename sanitization (cross-platform)
# ============================================================================

# Illegal characters mapped to safe alternatives
ILLEGAL_CHAR_MAP = {
    "<": "-",
    ">": "-",
    ":": " -",
    '"': "'",
    "\\": "-",
    "/": "-",
    "|": "-",
    "?": "",
    "*": "",
}

# Control characters (0x00-0x1F) and DEL (0x7F)
CONTROL_CHARS = set(chr(i) for i in range(32)) | {chr(127)}

# Windows reserved device names (case-insensitive)
WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    "COM1", "COM2", "COM3", "COM4", "COM5", "COM6", "COM7", "COM8", "COM9",
    "LPT1", "LPT2", "LPT3", "LPT4", "LPT5", "LPT6", "LPT7", "LPT8", "LPT9",
}


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename for cross-platform compatibility.

    Server-provided mod names and profile names both end up as filenames, so
    neither may contain separators or anything Windows refuses.

    Handles:
    - Illegal characters: < > : " \\ / | ? * → safe equivalents
    - Control characters (0x00-0x1F) and DEL (0x7F) → _
    - Windows reserved names (CON, PRN, AUX, NUL, COM1-9, LPT1-9) → prefixed with _
    - Trailing dots and spaces (Windows strips these silently) → stripped
    - "." and ".." → _
    """
    if not filename:
        return filename

    # NFC so names from macOS (NFD) compare equal to what's on disk elsewhere
    filename = unicodedata.normalize("NFC", filename)

    result = []
    for char in filename:
        if char in ILLEGAL_CHAR_MAP:
            result.append(ILLEGAL_CHAR_MAP[char])
        elif char in CONTROL_CHARS:
            result.append("_")
        else:
            result.append(char)
    filename = "".join(result)

    filename = filename.rstrip(". ")

    name_upper = filename.upper()
    base_name = name_upper.split(".")[0] if "." in name_upper else name_upper
    if base_name in WINDOWS_RESERVED_NAMES:
        filename = "_" + filename

    if not filename:
        filename = "_"

    return filename


# ============================================================================
# Mod names
# ============================================================================

_FAMILY_SPLIT = re.compile(r"[-_+ ]")
_VERSION_TOKEN = re.compile(r"^(v?\d|mc\d)", re.IGNORECASE)


def mod_family(filename: str) -> str:
    """
    Reduce a mod filename to its family, dropping version tokens.

    "jei-1.20.1-15.2.0.27.jar" and "jei-1.20.1-15.3.0.4.jar" are both "jei",
    "fabric-api-0.92.0+1.20.1.jar" is "fabric-api". Used to tie an old
    version's deletion to the download that replaces it.
    """
    stem = filename
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    tokens = []
    for token in _FAMILY_SPLIT.split(stem.casefold()):
        if not token:
            continue
        if _VERSION_TOKEN.match(token):
            break
        tokens.append(token)
    if not tokens:
        return stem.casefold()
    return "-".join(tokens)


def dedupe_by_newest(entries: list, key: Callable[[Any], str], modified: Callable[[Any], float]) -> list:
    """
    Deduplicate entries with the same key, keeping only the newest one.

    Servers occasionally list a mod twice after an upload; only the newest
    listing counts. Order of first appearance is preserved.
    """
    by_key = {}
    for entry in entries:
        k = key(entry)
        if k not in by_key or modified(entry) > modified(by_key[k]):
            by_key[k] = entry
    return list(by_key.values())


# ============================================================================
# Size and duration formatting
# ============================================================================

def format_size(size_bytes: int) -> str:
    """Format bytes as human readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} PB"


def format_speed(bytes_per_second: float) -> str:
    """Format a transfer rate, e.g. '1.2 MB/s'."""
    return f"{format_size(bytes_per_second)}/s"


def format_duration(seconds: float) -> str:
    """Format seconds as human readable duration."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    else:
        return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"


# ============================================================================
# Sorting utilities
# ============================================================================

def name_sort_key(name: str) -> str:
    """Sort key for case-insensitive name sorting."""
    return name.casefold()


def sort_by_name(items: List[Any], key: Optional[Callable[[Any], str]] = None) -> List[Any]:
    """
    Sort items by name, case-insensitive.

    Ties are broken by the exact name so the order is fully deterministic.

    Args:
        items: List of items to sort
        key: Optional function to extract name from item (default: item itself)
    """
    if key is None:
        return sorted(items, key=lambda x: (name_sort_key(x), x))
    return sorted(items, key=lambda x: (name_sort_key(key(x)), key(x)))
