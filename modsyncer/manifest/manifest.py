"""
Manifest classes for Minecraft Mod Syncer.

A branch manifest lists the mods a server expects clients to have, split into
required and optional entries, plus the optional zip bundle covering them.
Fetched fresh on every sync; never persisted locally.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..core.constants import CLIENT_SCOPES
from ..core.formatting import dedupe_by_newest, sanitize_filename, sort_by_name


class TransferMode(Enum):
    """How the downloads of a plan are fetched."""
    BULK = "bulk"  # one zip bundle, extracted into the mods folder
    PER_FILE = "per_file"  # each entry fetched on its own


@dataclass(frozen=True)
class ModEntry:
    """A single mod in a branch. Identity is the filename."""
    name: str
    required: bool = True
    size: int = 0  # 0 = unknown, match by name only
    modified: float = 0.0
    scope: str = "both"
    url: str = ""

    @property
    def optional(self) -> bool:
        return not self.required

    @property
    def is_client_side(self) -> bool:
        return self.scope in CLIENT_SCOPES

    def matches(self, size: int) -> bool:
        """Check whether a local file of this size satisfies the entry."""
        return self.size <= 0 or self.size == size

    @classmethod
    def from_dict(cls, data: dict, url: str = "") -> "ModEntry":
        return cls(
            name=sanitize_filename(data.get("name", "")),
            required=not data.get("is_optional", False),
            size=int(data.get("size", 0) or 0),
            modified=float(data.get("mod_date", 0.0) or 0.0),
            scope=data.get("scope", "both") or "both",
            url=url,
        )


@dataclass(frozen=True)
class BundleInfo:
    """The branch's zip bundle, when the server publishes one."""
    url: str
    size: int = 0
    modified: float = 0.0


@dataclass(frozen=True)
class Branch:
    """
    A named collection of mod entries.

    Entries are kept sorted by name; duplicates keep the newest listing.
    """
    name: str
    entries: tuple = field(default_factory=tuple)
    bundle: Optional[BundleInfo] = None
    _client_by_name: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        entries = dedupe_by_newest(
            [e for e in self.entries if e.name],
            key=lambda e: e.name,
            modified=lambda e: e.modified,
        )
        object.__setattr__(self, "entries", tuple(sort_by_name(entries, key=lambda e: e.name)))
        object.__setattr__(self, "_client_by_name", {e.name: e for e in self.entries if e.is_client_side})

    @property
    def client_entries(self) -> tuple:
        """Entries a client should have (server-only mods excluded)."""
        return tuple(e for e in self.entries if e.is_client_side)

    @property
    def required_entries(self) -> tuple:
        return tuple(e for e in self.client_entries if e.required)

    @property
    def optional_entries(self) -> tuple:
        return tuple(e for e in self.client_entries if e.optional)

    @property
    def optional_names(self) -> frozenset:
        return frozenset(e.name for e in self.optional_entries)

    @property
    def required_names(self) -> frozenset:
        return frozenset(e.name for e in self.required_entries)

    @property
    def transfer_modes(self) -> frozenset:
        """Transfer modes this branch supports."""
        if self.bundle is not None:
            return frozenset({TransferMode.BULK, TransferMode.PER_FILE})
        return frozenset({TransferMode.PER_FILE})

    def get(self, name: str) -> Optional[ModEntry]:
        """Get a client-side entry by filename."""
        return self._client_by_name.get(name)

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.client_entries)
