"""
Tests for local mods folder scanning and mods folder discovery.
"""

import tempfile
from pathlib import Path

import pytest

from modsyncer.core import paths
from modsyncer.core.paths import find_mods_folder, get_config_dir, is_mods_folder
from modsyncer.sync.inventory import find_partial_downloads, is_mod_file, scan_local_mods


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestIsModFile:

    def test_jar_case_insensitive(self):
        assert is_mod_file("a.jar")
        assert is_mod_file("A.JAR")
        assert is_mod_file("b.Jar")

    def test_other_files_ignored(self):
        assert not is_mod_file("readme.txt")
        assert not is_mod_file("a.jar.disabled")
        assert not is_mod_file("config")

    def test_partial_download_ignored(self):
        assert not is_mod_file("_download_a.jar")


class TestScanLocalMods:

    def test_lists_jars_with_size(self, temp_dir):
        (temp_dir / "b.jar").write_bytes(b"12345")
        (temp_dir / "A.JAR").write_bytes(b"1")
        (temp_dir / "notes.txt").write_text("x")
        (temp_dir / "_download_c.jar").write_bytes(b"partial")
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / "nested.jar").write_bytes(b"x")

        files = scan_local_mods(temp_dir)

        assert [(f.name, f.size) for f in files] == [("A.JAR", 1), ("b.jar", 5)]
        assert all(f.modified > 0 for f in files)

    def test_directory_named_like_jar_ignored(self, temp_dir):
        (temp_dir / "weird.jar").mkdir()
        assert scan_local_mods(temp_dir) == []

    def test_missing_folder_raises(self, temp_dir):
        with pytest.raises(OSError):
            scan_local_mods(temp_dir / "missing")


class TestFindPartialDownloads:

    def test_finds_leftovers(self, temp_dir):
        (temp_dir / "_download_a.jar").write_bytes(b"abc")
        (temp_dir / "_download_main.zip").write_bytes(b"")
        (temp_dir / "a.jar").write_bytes(b"ok")

        found = sorted((p.name, size) for p, size in find_partial_downloads(temp_dir))
        assert found == [("_download_a.jar", 3), ("_download_main.zip", 0)]

    def test_missing_folder(self, temp_dir):
        assert find_partial_downloads(temp_dir / "missing") == []


class TestModsFolderDiscovery:

    def test_is_mods_folder(self, temp_dir):
        (temp_dir / "mods").mkdir()
        (temp_dir / "other").mkdir()
        assert is_mods_folder(temp_dir / "mods")
        assert not is_mods_folder(temp_dir / "other")
        assert not is_mods_folder(temp_dir / "missing" / "mods")

    def test_prefers_local_mods(self, temp_dir, monkeypatch):
        (temp_dir / "mods").mkdir()
        (temp_dir / ".minecraft" / "mods").mkdir(parents=True)
        monkeypatch.setattr(paths, "get_default_mods_folder", lambda: None)
        assert find_mods_folder(temp_dir) == (temp_dir / "mods").resolve()

    def test_dot_minecraft(self, temp_dir, monkeypatch):
        (temp_dir / ".minecraft" / "mods").mkdir(parents=True)
        monkeypatch.setattr(paths, "get_default_mods_folder", lambda: None)
        assert find_mods_folder(temp_dir) == (temp_dir / ".minecraft" / "mods").resolve()

    def test_falls_back_to_launcher_default(self, temp_dir, monkeypatch):
        default = temp_dir / "launcher" / "mods"
        default.mkdir(parents=True)
        monkeypatch.setattr(paths, "get_default_mods_folder", lambda: default)
        assert find_mods_folder(temp_dir / "launcher" / "elsewhere") == default

    def test_nothing_found(self, temp_dir, monkeypatch):
        monkeypatch.setattr(paths, "get_default_mods_folder", lambda: None)
        assert find_mods_folder(temp_dir) is None


class TestConfigDir:

    def test_env_override(self, temp_dir, monkeypatch):
        monkeypatch.setenv("MODSYNCER_CONFIG_DIR", str(temp_dir / "cfg"))
        assert get_config_dir() == temp_dir / "cfg"
