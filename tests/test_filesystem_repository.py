"""Tests for archive-storing tiers."""

from unittest.mock import patch

import pytest

from xpkg.errors import IntegrityError, TransportError
from xpkg.package.models import PackageState, Tier, stamp
from xpkg.repository.filesystem import FileSystemRepository
from xpkg.repository.index import VersionIndex, archive_fingerprint
from xpkg.repository.remote import remote_filesystem
from xpkg.versioning.range import VersionRange
from xpkg.versioning.version import ComparableVersion

from conftest import SIG_A, store_archive

V = ComparableVersion


def _fresh(state):
    return state.copy_identity()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir):
    return FileSystemRepository(cache_dir, Tier.CACHE)


class TestQuery:

    @pytest.fixture(autouse=True)
    def _populate(self, cache_dir, state):
        for version in ("1.0.0", "1.4.0", "1.5.0", "2.0.0"):
            store_archive(cache_dir, state, version)

    def test_highest_eligible_version(self, cache, state):
        assert cache.query_in_range(state, VersionRange.parse("[1.0.0,1.5.0)"))
        assert state.version(Tier.CACHE) == V("1.4.0")
        assert state.filename(Tier.CACHE).filename == "zlib+1.4.0+default+Win32.zip"
        assert state.url(Tier.CACHE).endswith("version/1/4/0")

    def test_default_range_takes_newest(self, cache, state):
        assert cache.query(state)
        assert state.version(Tier.CACHE) == V("2.0.0")

    def test_unique_range(self, cache, state):
        assert cache.query_in_range(state, VersionRange.parse("[1.5.0]"))
        assert state.version(Tier.CACHE) == V("1.5.0")
        assert not cache.query_in_range(_fresh(state), VersionRange.parse("[1.6.0]"))

    def test_nothing_in_range(self, cache, state):
        assert not cache.query_in_range(state, VersionRange.parse("[3.0,)"))
        assert not state.exists(Tier.CACHE)

    def test_signature_is_archive_mtime(self, cache, cache_dir, state):
        archive = store_archive(cache_dir, state, "2.0.0")
        stamp(archive, SIG_A)
        assert cache.query(state)
        assert state.signature(Tier.CACHE) == SIG_A
        assert not (cache_dir / "com" / "virtuos" / "tnt" / "zlib" / ".signature").exists()

    def test_deleted_archive_is_noticed(self, cache, state):
        assert cache.query(state)
        cache.link(state).unlink()
        again = _fresh(state)
        assert cache.query(again)
        assert again.version(Tier.CACHE) == V("1.5.0")

    def test_listed_version_without_archive_falls_back_to_rescan(self, cache, cache_dir, state):
        root = cache_dir / "com" / "virtuos" / "tnt" / "zlib"
        assert cache.query(state)
        index = cache.index(state)
        key = archive_fingerprint(root)()
        index.path.write_text(f"# {key}\n1.0.0\n1.4.0\n1.5.0\n2.0.0\n3.0.0\n", encoding="utf-8")

        again = _fresh(state)
        assert cache.query(again)
        assert again.version(Tier.CACHE) == V("2.0.0")
        assert list(root.glob("*.dirty"))

    def test_new_archive_from_outside_is_found(self, cache, cache_dir, state):
        assert cache.query(state)
        store_archive(cache_dir, state, "2.1.0")
        again = _fresh(state)
        assert cache.query(again)
        assert again.version(Tier.CACHE) == V("2.1.0")

    def test_read_only_storage_is_still_queryable(self, cache, state):
        with patch.object(VersionIndex, "acquire_lock", side_effect=PermissionError("read-only")):
            assert cache.query(state)
        assert state.version(Tier.CACHE) == V("2.0.0")
        assert not cache.index(state).path.exists()

    def test_unreadable_storage_is_unreachable(self, cache, state):
        with patch("xpkg.repository.filesystem.signature_from_mtime", side_effect=PermissionError("denied")):
            with pytest.raises(TransportError):
                cache.query(state)

    def test_other_platform_is_invisible(self, cache):
        other = PackageState(name="zlib", group="com.virtuos.tnt", platform="x64")
        assert not cache.query(other)


class TestTransfer:

    @pytest.fixture
    def remote_dir(self, tmp_path, state):
        remote_dir = tmp_path / "remote"
        store_archive(remote_dir, state, "1.2.0", extra={"bin/zlib.dll": b"\x00" * 64})
        return remote_dir

    def test_submit_copies_and_stamps_signature(self, cache, remote_dir, state):
        remote = remote_filesystem(remote_dir)
        assert remote.query(state)
        assert cache.submit(state, remote)

        assert state.version(Tier.CACHE) == V("1.2.0")
        assert state.signature(Tier.CACHE) == state.signature(Tier.REMOTE)
        assert cache.link(state).read_bytes() == remote.link(state).read_bytes()

        again = _fresh(state)
        assert cache.query(again)
        assert again.signature(Tier.CACHE) == state.signature(Tier.REMOTE)

    def test_submit_without_source_version(self, cache, state):
        remote = remote_filesystem(cache.repo_dir)
        assert not cache.submit(state, remote)

    def test_short_copy_keeps_previous_content(self, cache, cache_dir, remote_dir, state):
        previous = store_archive(cache_dir, state, "1.2.0")
        before = previous.read_bytes()
        remote = remote_filesystem(remote_dir)
        remote.query(state)
        with patch("xpkg.repository.filesystem.os.path.getsize", return_value=1):
            with pytest.raises(IntegrityError):
                cache.submit(state, remote)
        assert previous.read_bytes() == before
        assert [p.name for p in previous.parent.iterdir()] == [previous.name]

    def test_download(self, cache, remote_dir, state, tmp_path):
        remote = remote_filesystem(remote_dir)
        remote.query(state)
        destination = tmp_path / "copy.zip"
        assert remote.download(state, destination)
        assert destination.read_bytes() == remote.link(state).read_bytes()

    def test_unmounted_remote_is_unreachable(self, tmp_path, state):
        remote = remote_filesystem(tmp_path / "not-mounted")
        with pytest.raises(TransportError):
            remote.query(state)
