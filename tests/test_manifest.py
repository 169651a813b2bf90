"""
Tests for the manifest model and the HTTP listing client.
"""

from unittest.mock import Mock

import pytest
import requests

from modsyncer.core.errors import BranchNotFoundError, ServerUnreachableError
from modsyncer.manifest.fetch import ManifestClient, normalize_address
from modsyncer.manifest.manifest import Branch, BundleInfo, ModEntry, TransferMode


def make_response(status=200, payload=None):
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}", response=response)
    else:
        response.raise_for_status.return_value = None
    return response


def make_client(*responses):
    session = Mock()
    session.get.side_effect = list(responses)
    return ManifestClient("mods.example.com", max_retries=2, session=session), session


BRANCH_DOC = {
    "mods": [
        {"name": "jei-1.0.jar", "mod_date": 100.0, "size": 10, "is_optional": False},
        {"name": "optifine.jar", "mod_date": 50.0, "size": 5, "is_optional": True},
        {"name": "server-only.jar", "mod_date": 1.0, "size": 1, "is_optional": False, "scope": "server"},
    ],
    "zip": {"size": 16, "is_present": True, "mod_date": 100.0},
}


class TestNormalizeAddress:

    def test_scheme_added(self):
        assert normalize_address("mods.example.com/mc") == "https://mods.example.com/mc"

    def test_existing_scheme_kept(self):
        assert normalize_address("http://localhost:8000/") == "http://localhost:8000"

    def test_empty(self):
        assert normalize_address("  ") == ""

    def test_empty_address_rejected(self):
        with pytest.raises(ServerUnreachableError):
            ManifestClient("")


class TestBranchModel:

    def test_duplicates_keep_newest(self):
        branch = Branch("main", (
            ModEntry("a.jar", size=1, modified=1.0),
            ModEntry("a.jar", size=2, modified=5.0),
        ))
        assert len(branch.entries) == 1
        assert branch.entries[0].size == 2

    def test_required_and_optional_split(self):
        branch = Branch("main", (ModEntry("r.jar"), ModEntry("o.jar", required=False)))
        assert [e.name for e in branch.required_entries] == ["r.jar"]
        assert branch.optional_names == frozenset({"o.jar"})

    def test_transfer_modes(self):
        assert Branch("main").transfer_modes == frozenset({TransferMode.PER_FILE})
        with_bundle = Branch("main", bundle=BundleInfo("u", size=1))
        assert TransferMode.BULK in with_bundle.transfer_modes

    def test_get_ignores_server_only(self):
        branch = Branch("main", (ModEntry("s.jar", scope="server"),))
        assert branch.get("s.jar") is None

    def test_get_returns_newest_listing(self):
        branch = Branch("main", (
            ModEntry("a.jar", size=1, modified=1.0),
            ModEntry("a.jar", size=2, modified=5.0),
            ModEntry("b.jar", required=False),
        ))
        assert branch.get("a.jar").size == 2
        assert branch.get("b.jar").optional
        assert branch.get("missing.jar") is None

    def test_equality_ignores_lookup_index(self):
        assert Branch("main", (ModEntry("a.jar"),)) == Branch("main", (ModEntry("a.jar"),))

    def test_entry_name_sanitized(self):
        entry = ModEntry.from_dict({"name": "../evil.jar", "size": 1})
        assert "/" not in entry.name


class TestManifestClient:

    def test_branch_names(self):
        client, session = make_client(make_response(payload=["main", "beta"]))
        assert client.get_branch_names() == ["main", "beta"]
        session.get.assert_called_once_with("https://mods.example.com/api/mods", timeout=10)

    def test_branch_names_invalid_payload(self):
        client, _ = make_client(make_response(payload={"oops": 1}))
        with pytest.raises(ServerUnreachableError):
            client.get_branch_names()

    def test_get_branch(self):
        client, session = make_client(make_response(payload=BRANCH_DOC))
        branch = client.get_branch("main")

        session.get.assert_called_once_with("https://mods.example.com/api/mods/main", timeout=10)
        assert [e.name for e in branch.required_entries] == ["jei-1.0.jar"]
        assert [e.name for e in branch.optional_entries] == ["optifine.jar"]
        assert branch.get("jei-1.0.jar").url == "https://mods.example.com/mods/main/jei-1.0.jar"
        assert branch.bundle == BundleInfo("https://mods.example.com/mods/main", size=16, modified=100.0)

    def test_branch_without_zip(self):
        client, _ = make_client(make_response(payload={"mods": [], "zip": {"is_present": False}}))
        assert client.get_branch("main").bundle is None

    def test_urls_quoted(self):
        client, _ = make_client()
        assert client.mod_url("my branch", "a b.jar") == "https://mods.example.com/mods/my%20branch/a%20b.jar"

    def test_unknown_branch(self):
        client, _ = make_client(make_response(status=404))
        with pytest.raises(BranchNotFoundError):
            client.get_branch("nope")

    def test_server_error(self):
        client, _ = make_client(make_response(status=500))
        with pytest.raises(ServerUnreachableError):
            client.get_branch("main")

    def test_malformed_entry_skipped(self):
        doc = {"mods": [{"name": "ok.jar", "size": 1}, {"name": "bad.jar", "size": "huge"}]}
        client, _ = make_client(make_response(payload=doc))
        assert [e.name for e in client.get_branch("main").entries] == ["ok.jar"]

    def test_null_mods_and_zip(self):
        branch = ManifestClient("mods.example.com", session=Mock()).parse_branch("main", {"mods": None, "zip": None})
        assert branch.entries == ()
        assert branch.bundle is None

    @pytest.mark.parametrize("doc", [
        {"mods": {"name": "a.jar"}},
        {"mods": [], "zip": ["not", "an", "object"]},
        {"mods": [], "zip": {"is_present": True, "size": "huge"}},
    ])
    def test_malformed_document_is_recoverable(self, doc):
        client, _ = make_client(make_response(payload=doc))
        with pytest.raises(ServerUnreachableError):
            client.get_branch("main")

    def test_connection_error_retried_then_raised(self, monkeypatch):
        monkeypatch.setattr("modsyncer.manifest.fetch.time.sleep", lambda s: None)
        client, session = make_client(requests.ConnectionError("down"), requests.ConnectionError("down"))
        with pytest.raises(ServerUnreachableError):
            client.get_branch_names()
        assert session.get.call_count == 2

    def test_connection_error_recovers(self, monkeypatch):
        monkeypatch.setattr("modsyncer.manifest.fetch.time.sleep", lambda s: None)
        client, _ = make_client(requests.Timeout("slow"), make_response(payload=["main"]))
        assert client.get_branch_names() == ["main"]

    def test_server_exists(self):
        client, _ = make_client(make_response(payload=[]))
        assert client.server_exists()
        client, _ = make_client(requests.ConnectionError("down"))
        assert not client.server_exists()
