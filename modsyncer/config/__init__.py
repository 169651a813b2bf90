"""
User configuration: named profiles and their per-branch overrides.
"""

from .overrides import OverrideRecord, OverrideStore
from .profiles import Profile, ProfileManager

__all__ = [
    "OverrideRecord",
    "OverrideStore",
    "Profile",
    "ProfileManager",
]
