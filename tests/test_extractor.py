"""
Tests for bundle extraction.
"""

import tempfile
import zipfile
from pathlib import Path

import pytest

from modsyncer.core.errors import TransferCancelled, TransientTransferError
from modsyncer.core.progress import CancelToken
from modsyncer.sync.extractor import extract_members


def make_zip(path: Path, members: dict):
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestExtractMembers:

    def test_extracts_wanted_only(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"a.jar": b"aaaa", "b.jar": b"bb", "readme.txt": b"hi"})
        mods = temp_dir / "mods"
        mods.mkdir()

        extracted, failed = extract_members(archive, mods, {"a.jar": 4})

        assert extracted == ["a.jar"]
        assert failed == {}
        assert sorted(p.name for p in mods.iterdir()) == ["a.jar"]
        assert (mods / "a.jar").read_bytes() == b"aaaa"

    def test_nested_members_flattened(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"mods/a.jar": b"aaaa"})
        mods = temp_dir / "mods"
        mods.mkdir()

        extracted, _ = extract_members(archive, mods, {"a.jar": 0})

        assert extracted == ["a.jar"]
        assert (mods / "a.jar").exists()

    def test_path_traversal_cannot_escape(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"../../evil.jar": b"x"})
        mods = temp_dir / "mods"
        mods.mkdir()

        extracted, _ = extract_members(archive, mods, {"evil.jar": 0})

        assert extracted == ["evil.jar"]
        assert (mods / "evil.jar").exists()
        assert not (temp_dir / "evil.jar").exists()

    def test_missing_and_mismatched_reported(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"a.jar": b"aaaa"})
        mods = temp_dir / "mods"
        mods.mkdir()

        extracted, failed = extract_members(archive, mods, {"a.jar": 99, "gone.jar": 1})

        assert extracted == []
        assert "size mismatch" in failed["a.jar"]
        assert failed["gone.jar"] == "missing from bundle"
        assert list(mods.iterdir()) == []

    def test_bad_archive_is_transient(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        archive.write_bytes(b"this is not a zip")
        with pytest.raises(TransientTransferError):
            extract_members(archive, temp_dir, {"a.jar": 0})

    def test_cancel_leaves_no_partial(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"a.jar": b"a" * 10})
        mods = temp_dir / "mods"
        mods.mkdir()
        cancel = CancelToken()
        cancel.cancel()

        with pytest.raises(TransferCancelled):
            extract_members(archive, mods, {"a.jar": 10}, cancel)

        assert list(mods.iterdir()) == []

    def test_replaces_existing_file(self, temp_dir):
        archive = temp_dir / "bundle.zip"
        make_zip(archive, {"a.jar": b"new"})
        mods = temp_dir / "mods"
        mods.mkdir()
        (mods / "a.jar").write_bytes(b"old old")

        extract_members(archive, mods, {"a.jar": 3})

        assert (mods / "a.jar").read_bytes() == b"new"
