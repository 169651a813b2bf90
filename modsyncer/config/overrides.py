"""
Per-profile override persistence for Minecraft Mod Syncer.

Each profile has one human-readable keep-file holding, per branch, the
optional mods the user opted into and the local files they want kept even
though the branch doesn't list them:

    # mod-syncer overrides for profile 'survival'
    [survival-1.20]
    optional = C.jar
    keep = D.jar

A missing file means "no overrides yet". Unknown lines are logged and skipped.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from ..core.errors import OverrideStoreError
from ..core.files import atomic_write_text, remove_quietly
from ..core.formatting import sanitize_filename, sort_by_name
from ..manifest.manifest import Branch

logger = logging.getLogger(__name__)

KEEP_FILE_SUFFIX = ".keep"
OPTIONAL_KEY = "optional"
KEEP_KEY = "keep"


@dataclass(frozen=True)
class OverrideRecord:
    """User choices for one profile on one branch."""
    branch: str
    optionals_selected: frozenset = field(default_factory=frozenset)
    keep_flagged: frozenset = field(default_factory=frozenset)
    # Selections dropped on load because the branch no longer offers them
    stale_optionals: tuple = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.optionals_selected and not self.keep_flagged

    def filtered(self, branch: Branch) -> "OverrideRecord":
        """
        Drop selections the branch no longer supports.

        Optional selections must name an optional entry of the branch. Keep
        flags naming a required entry are meaningless and dropped too.
        """
        optional_names = branch.optional_names
        selected = frozenset(n for n in self.optionals_selected if n in optional_names)
        stale = tuple(sort_by_name(self.optionals_selected - selected))
        keep = frozenset(n for n in self.keep_flagged if n not in branch.required_names)
        return replace(
            self,
            optionals_selected=selected,
            keep_flagged=keep,
            stale_optionals=tuple(sort_by_name(set(self.stale_optionals) | set(stale))),
        )


def _parse(text: str, source: Path) -> dict[str, dict[str, set]]:
    """Parse keep-file text into {branch: {"optional": set, "keep": set}}."""
    sections: dict[str, dict[str, set]] = {}
    current = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("[") and line.endswith("]"):
            current = line[1:-1].strip()
            sections.setdefault(current, {OPTIONAL_KEY: set(), KEEP_KEY: set()})
            continue

        key, sep, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if current is None or not sep or not value or key not in (OPTIONAL_KEY, KEEP_KEY):
            logger.warning("Ignoring unknown line %d in %s: %r", lineno, source, raw)
            continue

        sections[current][key].add(value)

    return sections


def _render(profile: str, sections: dict[str, dict[str, set]]) -> str:
    lines = [f"# mod-syncer overrides for profile '{profile}'"]
    for branch in sort_by_name(list(sections)):
        data = sections[branch]
        if not data[OPTIONAL_KEY] and not data[KEEP_KEY]:
            continue
        lines.append(f"[{branch}]")
        for name in sort_by_name(list(data[OPTIONAL_KEY])):
            lines.append(f"{OPTIONAL_KEY} = {name}")
        for name in sort_by_name(list(data[KEEP_KEY])):
            lines.append(f"{KEEP_KEY} = {name}")
    return "\n".join(lines) + "\n"


class OverrideStore:
    """Reads and writes keep-files under one directory, one file per profile."""

    def __init__(self, directory: Path):
        self.directory = directory

    def path_for(self, profile: str) -> Path:
        return self.directory / f"{sanitize_filename(profile)}{KEEP_FILE_SUFFIX}"

    def _read_sections(self, profile: str) -> dict[str, dict[str, set]]:
        path = self.path_for(profile)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise OverrideStoreError(f"Cannot read overrides for '{profile}': {e}") from e
        return _parse(text, path)

    def load(self, profile: str, branch: Branch) -> OverrideRecord:
        """
        Load the overrides of a profile for a branch.

        Stale optional selections are dropped and listed in stale_optionals.
        """
        sections = self._read_sections(profile)
        data = sections.get(branch.name)
        if data is None:
            return OverrideRecord(branch=branch.name)

        record = OverrideRecord(
            branch=branch.name,
            optionals_selected=frozenset(data[OPTIONAL_KEY]),
            keep_flagged=frozenset(data[KEEP_KEY]),
        ).filtered(branch)

        if record.stale_optionals:
            logger.warning(
                "Profile '%s' branch '%s': dropping optional selections no longer offered: %s",
                profile, branch.name, ", ".join(record.stale_optionals),
            )
        return record

    def save(self, profile: str, record: OverrideRecord):
        """
        Persist a record, replacing its branch section and keeping the others.

        Raises OverrideStoreError; the previous file survives any failure.
        """
        sections = self._read_sections(profile)
        sections[record.branch] = {
            OPTIONAL_KEY: set(record.optionals_selected),
            KEEP_KEY: set(record.keep_flagged),
        }
        path = self.path_for(profile)
        try:
            atomic_write_text(path, _render(profile, sections))
        except OSError as e:
            raise OverrideStoreError(f"Cannot save overrides for '{profile}': {e}") from e
        logger.info(
            "Saved overrides for '%s' branch '%s' (%d optional, %d keep)",
            profile, record.branch, len(record.optionals_selected), len(record.keep_flagged),
        )

    def delete(self, profile: str) -> bool:
        """Remove a profile's keep-file. Returns True if one existed."""
        try:
            return remove_quietly(self.path_for(profile))
        except OSError as e:
            raise OverrideStoreError(f"Cannot delete overrides for '{profile}': {e}") from e
