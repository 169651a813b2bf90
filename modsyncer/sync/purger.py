"""
Mod file deletion.
"""

import logging
from pathlib import Path
from typing import List, Tuple

from ..core.errors import TransferError

logger = logging.getLogger(__name__)


def delete_mod(mods_path: Path, name: str):
    """
    Delete one mod file. A file that is already gone counts as deleted.

    Raises TransferError if the file exists but cannot be removed.
    """
    path = mods_path / name
    if path.parent != mods_path:
        raise TransferError(f"refusing to delete outside mods folder: {name}")
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("%s already removed", name)
    except OSError as e:
        raise TransferError(f"could not delete: {e}") from e


def delete_files(files: List[Tuple[Path, int]]) -> int:
    """
    Delete leftover files (e.g. partial downloads).

    Args:
        files: List of (Path, size) tuples

    Returns number of files deleted.
    """
    deleted = 0
    for f, _ in files:
        try:
            f.unlink()
            deleted += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove %s: %s", f, e)
    return deleted
