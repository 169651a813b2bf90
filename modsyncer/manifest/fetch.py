"""
Remote manifest fetching for Minecraft Mod Syncer.

Talks to the server's JSON API to list branches and fetch branch manifests.
Byte streams (mod files, bundles) are handled by sync.transport instead.
"""

import logging
import time
from dataclasses import replace
from typing import Optional
from urllib.parse import quote

import requests

from ..core.errors import BranchNotFoundError, ServerUnreachableError
from .manifest import Branch, BundleInfo, ModEntry

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "https://"


def normalize_address(address: str) -> str:
    """
    Turn a user-entered server address into a base URL.

    "example.com/minecraft" becomes "https://example.com/minecraft";
    addresses that already carry a scheme are kept as is.
    """
    address = address.strip().rstrip("/")
    if not address:
        return ""
    if "://" not in address:
        address = DEFAULT_SCHEME + address
    return address


class ManifestClient:
    """
    Mod server API client.

    Handles branch listing and manifest retrieval. Does NOT handle downloads
    (see TransferOrchestrator for that).
    """

    def __init__(self, address: str, timeout: int = 10, max_retries: int = 3, session: Optional[requests.Session] = None):
        self.base_url = normalize_address(address)
        if not self.base_url:
            raise ServerUnreachableError("No server address set")
        self.api_url = f"{self.base_url}/api"
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()

    def mod_url(self, branch: str, file_name: str) -> str:
        return f"{self.base_url}/mods/{quote(branch)}/{quote(file_name)}"

    def bundle_url(self, branch: str) -> str:
        return f"{self.base_url}/mods/{quote(branch)}"

    def _get_json(self, url: str):
        """GET a JSON document, retrying timeouts and connection errors."""
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except (requests.Timeout, requests.ConnectionError) as e:
                if attempt < self.max_retries - 1:
                    logger.debug("Retrying %s after %s", url, e)
                    time.sleep(2 ** attempt)
                    continue
                raise ServerUnreachableError(f"Cannot reach {self.base_url}: {e}") from e
        raise ServerUnreachableError(f"Cannot reach {self.base_url}")

    def server_exists(self) -> bool:
        """Check whether the address answers like a mod server."""
        try:
            response = self.session.get(f"{self.api_url}/mods", timeout=self.timeout)
        except requests.RequestException as e:
            logger.info("Server check failed for %s: %s", self.base_url, e)
            return False
        return response.ok

    def get_branch_names(self) -> list[str]:
        """List the branch names published by the server."""
        try:
            data = self._get_json(f"{self.api_url}/mods")
        except requests.HTTPError as e:
            raise ServerUnreachableError(f"Failed to get branches: HTTP {e.response.status_code}") from e
        except ValueError as e:
            raise ServerUnreachableError(f"Server returned invalid branch list: {e}") from e

        if not isinstance(data, list):
            raise ServerUnreachableError("Server returned invalid branch list")
        names = [str(name) for name in data]
        logger.info("Got %d branches from %s", len(names), self.base_url)
        return names

    def get_branch(self, branch: str) -> Branch:
        """
        Fetch a branch manifest.

        Raises BranchNotFoundError if the server doesn't know the branch.
        """
        try:
            data = self._get_json(f"{self.api_url}/mods/{quote(branch)}")
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise BranchNotFoundError(branch) from e
            status = e.response.status_code if e.response is not None else "?"
            raise ServerUnreachableError(f"Failed to get mods: HTTP {status}") from e
        except ValueError as e:
            raise ServerUnreachableError(f"Server returned invalid manifest: {e}") from e

        return self.parse_branch(branch, data)

    def parse_branch(self, branch: str, data: dict) -> Branch:
        """Build a Branch from the server's branch info document."""
        if not isinstance(data, dict):
            raise ServerUnreachableError(f"Invalid manifest for branch '{branch}'")

        entries = []
        mods = data.get("mods") or []
        if not isinstance(mods, list):
            raise ServerUnreachableError(f"Invalid manifest for branch '{branch}': 'mods' must be a list")
        for mod in mods:
            try:
                entry = ModEntry.from_dict(mod)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping malformed manifest entry in '%s': %r (%s)", branch, mod, e)
                continue
            # URL uses the server's name, the entry the sanitized local one
            entries.append(replace(entry, url=self.mod_url(branch, str(mod.get("name") or entry.name))))

        bundle = None
        zip_info = data.get("zip") or {}
        if not isinstance(zip_info, dict):
            raise ServerUnreachableError(f"Invalid manifest for branch '{branch}': 'zip' must be an object")
        if zip_info.get("is_present"):
            try:
                size = int(zip_info.get("size", 0) or 0)
                modified = float(zip_info.get("mod_date", 0.0) or 0.0)
            except (TypeError, ValueError) as e:
                raise ServerUnreachableError(f"Invalid bundle info for branch '{branch}': {e}") from e
            bundle = BundleInfo(url=self.bundle_url(branch), size=size, modified=modified)

        result = Branch(name=branch, entries=tuple(entries), bundle=bundle)
        logger.info(
            "Branch '%s': %d required, %d optional, bundle %s",
            branch, len(result.required_entries), len(result.optional_entries),
            "present" if bundle else "absent",
        )
        return result
