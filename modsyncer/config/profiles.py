"""
Profile management for Minecraft Mod Syncer.

Config file:
- profiles.json: every named profile (server address, mods path, branch) plus
  the name of the profile used last, which is re-activated at startup.

Per-profile overrides live in separate keep-files (see overrides.py).
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.errors import (
    ProfileExistsError,
    ProfileNotFoundError,
    ProfileStoreError,
)
from ..core.files import atomic_write_text
from ..core.formatting import sort_by_name
from .overrides import OverrideStore

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    """A named sync configuration."""
    name: str
    address: str = ""
    mods_path: str = ""
    branch: str = ""

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "mods_path": self.mods_path,
            "branch": self.branch,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "Profile":
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        for key in ("address", "mods_path", "branch"):
            if not isinstance(data.get(key, ""), str):
                raise TypeError(f"'{key}' must be a string")
        return cls(
            name=name,
            address=data.get("address", ""),
            mods_path=data.get("mods_path", ""),
            branch=data.get("branch", ""),
        )


class ProfileManager:
    """
    Owns the named profiles and which one is active.

    Exactly one profile is active at a time. Activation doesn't touch the
    network; callers open a fresh SyncSession for the activated profile.
    """

    def __init__(self, path: Path, override_store: Optional[OverrideStore] = None):
        self.path = path
        self.override_store = override_store
        self.profiles: dict[str, Profile] = {}
        self.last_profile: str = ""
        self._active: Optional[str] = None

    @classmethod
    def load(cls, path: Path, override_store: Optional[OverrideStore] = None) -> "ProfileManager":
        """
        Load profiles from file.

        A missing file yields an empty manager. A corrupt record is skipped
        with a warning; an unreadable or non-JSON file raises ProfileStoreError.
        """
        manager = cls(path, override_store)

        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            return manager
        except OSError as e:
            raise ProfileStoreError(f"Cannot read {path}: {e}") from e

        if not text.strip():
            return manager

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProfileStoreError(f"{path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProfileStoreError(f"{path} has an unexpected layout")

        records = data.get("profiles") or {}
        if not isinstance(records, dict):
            raise ProfileStoreError(f"{path} has an unexpected layout: 'profiles' must be an object")

        for name, record in records.items():
            try:
                manager.profiles[name] = Profile.from_dict(name, record)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping corrupt profile '%s' in %s: %s", name, path, e)

        last = data.get("last_profile", "")
        manager.last_profile = last if isinstance(last, str) else ""
        return manager

    def _write(self, profiles: dict, last_profile: str):
        """Persist a candidate state. Callers commit it to memory only on success."""
        data = {
            "last_profile": last_profile,
            "profiles": {name: p.to_dict() for name, p in profiles.items()},
        }
        try:
            atomic_write_text(self.path, json.dumps(data, indent=2))
        except OSError as e:
            raise ProfileStoreError(f"Cannot write {self.path}: {e}") from e

    def list(self) -> list[str]:
        """Profile names, sorted."""
        return sort_by_name(list(self.profiles))

    def exists(self, name: str) -> bool:
        return name in self.profiles

    def get(self, name: str) -> Profile:
        try:
            return self.profiles[name]
        except KeyError:
            raise ProfileNotFoundError(name) from None

    @property
    def active(self) -> Optional[Profile]:
        if self._active is None:
            return None
        return self.profiles.get(self._active)

    def activate(self, name: str) -> Profile:
        """Make a profile the active one and remember it for next startup."""
        profile = self.get(name)
        if self.last_profile != name:
            self._write(self.profiles, name)
            self.last_profile = name
        self._active = name
        logger.info("Activated profile '%s'", name)
        return profile

    def deactivate(self):
        self._active = None

    def startup(self) -> Optional[Profile]:
        """
        Activate the last-used profile.

        Returns None when there is none, meaning first-run setup is needed.
        """
        if self.last_profile and self.last_profile in self.profiles:
            return self.activate(self.last_profile)
        if self.last_profile:
            logger.warning("Last used profile '%s' no longer exists", self.last_profile)
        return None

    def save(self, profile: Profile):
        """Insert or update a profile and persist the whole store."""
        profiles = {**self.profiles, profile.name: profile}
        self._write(profiles, self.last_profile)
        self.profiles = profiles
        logger.info("Saved profile '%s'", profile.name)

    def create(self, profile: Profile) -> Profile:
        """Add a new profile. Names are trimmed; empty or taken names are rejected."""
        name = profile.name.strip()
        if not name:
            raise ValueError("Name cannot be empty")
        if name in self.profiles:
            raise ProfileExistsError(name)
        profile.name = name
        self.save(profile)
        return profile

    def delete(self, name: str):
        """Remove a profile and its keep-file. Deactivates it if active."""
        if name not in self.profiles:
            raise ProfileNotFoundError(name)
        profiles = {n: p for n, p in self.profiles.items() if n != name}
        last_profile = "" if self.last_profile == name else self.last_profile
        self._write(profiles, last_profile)

        self.profiles = profiles
        self.last_profile = last_profile
        if self._active == name:
            self._active = None
        if self.override_store is not None:
            self.override_store.delete(name)
        logger.info("Deleted profile '%s'", name)
