"""Bundle (zip) extraction into the mods folder."""

import logging
import os
import zipfile
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

from ..core.constants import CHUNK_SIZE, TEMP_PREFIX
from ..core.errors import TransientTransferError
from ..core.files import remove_quietly
from ..core.progress import CancelToken

logger = logging.getLogger(__name__)


def _member_name(info: zipfile.ZipInfo) -> Optional[str]:
    """Flat file name of a zip member, or None for directories and unsafe names."""
    if info.is_dir():
        return None
    name = PurePosixPath(info.filename.replace("\\", "/")).name
    if not name or name in (".", "..") or name.startswith(TEMP_PREFIX):
        return None
    return name


def extract_members(
    archive_path: Path,
    target_dir: Path,
    wanted: Dict[str, int],
    cancel: Optional[CancelToken] = None,
) -> Tuple[List[str], Dict[str, str]]:
    """
    Extract the wanted mod files from a bundle.

    Args:
        archive_path: Downloaded zip file
        target_dir: Mods folder
        wanted: file name -> expected size (0 when unknown)
        cancel: Polled between chunks

    Each member is written to a temp name and renamed into place, so a
    failure never leaves a truncated jar under its final name.

    Returns (extracted names, {name: reason} for wanted names that failed).
    Raises TransientTransferError if the archive itself is unreadable.
    """
    extracted = []
    failed = {}
    try:
        zf = zipfile.ZipFile(archive_path, "r")
    except (zipfile.BadZipFile, OSError) as e:
        raise TransientTransferError(f"bad bundle: {e}") from e

    with zf:
        members = {}
        for info in zf.infolist():
            name = _member_name(info)
            if name in wanted and name not in members:
                members[name] = info

        for name, expected in wanted.items():
            if cancel is not None:
                cancel.raise_if_cancelled()
            info = members.get(name)
            if info is None:
                failed[name] = "missing from bundle"
                continue
            if expected > 0 and info.file_size != expected:
                failed[name] = f"size mismatch in bundle ({info.file_size} != {expected})"
                continue

            final_path = target_dir / name
            tmp_path = target_dir / f"{TEMP_PREFIX}{name}"
            try:
                with zf.open(info) as src, open(tmp_path, "wb") as dst:
                    while True:
                        if cancel is not None:
                            cancel.raise_if_cancelled()
                        chunk = src.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        dst.write(chunk)
                os.replace(tmp_path, final_path)
            except (zipfile.BadZipFile, OSError) as e:
                remove_quietly(tmp_path)
                failed[name] = f"extract failed: {e}"
                logger.warning("Could not extract %s from %s: %s", name, archive_path.name, e)
                continue
            except BaseException:
                remove_quietly(tmp_path)
                raise
            extracted.append(name)

    return extracted, failed
