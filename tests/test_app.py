"""
Tests for the command line front end.
"""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from modsyncer import app
from modsyncer.manifest.manifest import Branch, ModEntry
from modsyncer.sync import session as session_module
from modsyncer.sync.orchestrator import TransferOrchestrator

BASE = "https://mods.example.com/mods/main"


class MemoryStreamer:

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def iter_chunks(self, url):
        yield b"x" * 4


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir, monkeypatch):
    monkeypatch.setenv("MODSYNCER_CONFIG_DIR", str(temp_dir / "config"))
    return temp_dir / "config"


@pytest.fixture
def mods(temp_dir):
    path = temp_dir / "mods"
    path.mkdir()
    (path / "old.jar").write_bytes(b"old")
    return path


@pytest.fixture
def server(monkeypatch):
    """Replace the network with a fixed branch and in-memory downloads."""
    client = Mock()
    client.base_url = "https://mods.example.com"
    client.get_branch.return_value = Branch("main", (
        ModEntry("new.jar", size=4, url=f"{BASE}/new.jar"),
        ModEntry("extra.jar", required=False, size=4, url=f"{BASE}/extra.jar"),
    ))
    client.get_branch_names.return_value = ["main", "beta"]
    monkeypatch.setattr(session_module, "ManifestClient", lambda address: client)
    monkeypatch.setattr(
        session_module, "TransferOrchestrator",
        lambda path: TransferOrchestrator(path, streamer_factory=MemoryStreamer, backoff=0),
    )
    return client


def create_profile(mods):
    return app.main(["profiles", "create", "survival", "--address", "mods.example.com",
                     "--mods", str(mods), "--branch", "main"])


class TestProfiles:

    def test_create_and_list(self, config, mods, capsys):
        assert create_profile(mods) == 0
        assert app.main(["profiles", "list"]) == 0
        out = capsys.readouterr().out
        assert "survival" in out
        assert (config / "profiles.json").exists()

    def test_duplicate_is_error(self, config, mods, capsys):
        create_profile(mods)
        assert create_profile(mods) == 2
        assert "already exists" in capsys.readouterr().err

    def test_use_missing_profile(self, config):
        assert app.main(["profiles", "use", "nope"]) == 2

    def test_edit(self, config, mods):
        create_profile(mods)
        assert app.main(["profiles", "edit", "survival", "--branch", "beta"]) == 0
        profiles = app.SyncApp().profiles
        assert profiles.get("survival").branch == "beta"

    def test_delete(self, config, mods):
        create_profile(mods)
        assert app.main(["profiles", "delete", "survival", "--yes"]) == 0
        assert app.SyncApp().profiles.list() == []

    def test_no_profile_yet(self, config, server, capsys):
        assert app.main(["status"]) == 2
        assert "No profile" in capsys.readouterr().err


class TestSync:

    def test_branches(self, config, mods, server, capsys):
        create_profile(mods)
        assert app.main(["branches"]) == 0
        out = capsys.readouterr().out
        assert "* main" in out
        assert "beta" in out

    def test_status(self, config, mods, server, capsys):
        create_profile(mods)
        assert app.main(["status"]) == 0
        out = capsys.readouterr().out
        assert "+ new.jar" in out
        assert "- old.jar" in out
        assert "extra.jar" in out

    def test_dry_run_changes_nothing(self, config, mods, server):
        create_profile(mods)
        assert app.main(["sync", "--dry-run"]) == 0
        assert sorted(p.name for p in mods.iterdir()) == ["old.jar"]

    def test_sync_with_choices(self, config, mods, server):
        create_profile(mods)
        assert app.main(["sync", "--yes", "--select", "extra.jar", "--keep", "old.jar"]) == 0
        assert sorted(p.name for p in mods.iterdir()) == ["extra.jar", "new.jar", "old.jar"]

        # Choices were saved: nothing left to do
        assert app.main(["sync", "--yes"]) == 0
        assert sorted(p.name for p in mods.iterdir()) == ["extra.jar", "new.jar", "old.jar"]

    def test_sync_default_removes_orphans(self, config, mods, server):
        create_profile(mods)
        assert app.main(["sync", "--yes"]) == 0
        assert sorted(p.name for p in mods.iterdir()) == ["new.jar"]

    def test_stale_selection_warned(self, config, mods, server, capsys):
        create_profile(mods)
        assert app.main(["sync", "--yes", "--select", "extra.jar"]) == 0
        capsys.readouterr()

        server.get_branch.return_value = Branch("main", (
            ModEntry("new.jar", size=4, url=f"{BASE}/new.jar"),
            ModEntry("another.jar", size=4, url=f"{BASE}/another.jar"),
        ))
        assert app.main(["sync", "--yes"]) == 0
        assert "no longer offered" in capsys.readouterr().out
        assert sorted(p.name for p in mods.iterdir()) == ["another.jar", "new.jar"]

    def test_invalid_selection(self, config, mods, server, capsys):
        create_profile(mods)
        assert app.main(["sync", "--yes", "--select", "new.jar"]) == 2
        assert "required" in capsys.readouterr().err
