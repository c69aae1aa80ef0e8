"""Tests for the Share and Target tiers."""

import pytest

from xpkg.errors import IntegrityError
from xpkg.package.models import Tier, signature_from_mtime
from xpkg.repository import layout as layouts
from xpkg.repository.extracted import ExtractedRepository
from xpkg.repository.filesystem import FileSystemRepository
from xpkg.versioning.range import VersionRange
from xpkg.versioning.version import ComparableVersion

from conftest import store_archive

V = ComparableVersion


@pytest.fixture
def cache(tmp_path, state):
    cache_dir = tmp_path / "cache"
    store_archive(cache_dir, state, "1.2.0", extra={"bin/zlib.dll": b"dll"})
    return FileSystemRepository(cache_dir, Tier.CACHE)


@pytest.fixture
def share(tmp_path):
    return ExtractedRepository(tmp_path / "share", Tier.SHARE, layouts.SHARE)


@pytest.fixture
def target(tmp_path):
    return ExtractedRepository(tmp_path / "work" / "target", Tier.TARGET, layouts.TARGET)


class TestExtractedSubmit:

    def test_extracts_and_writes_marker(self, cache, share, state, tmp_path):
        assert cache.query(state)
        assert share.submit(state, cache)

        content = tmp_path / "share" / "com.virtuos.tnt" / "zlib" / "zlib+1.2.0+default+Win32"
        assert (content / "pom.xml").exists()
        assert (content / "bin" / "zlib.dll").read_bytes() == b"dll"
        marker = content / "zlib+1.2.0+default+Win32.t"
        assert signature_from_mtime(marker) == state.signature(Tier.CACHE)
        assert state.url(Tier.SHARE) == str(content)
        assert state.local_url() == str(content)

    def test_query_finds_submitted_version(self, cache, share, state):
        cache.query(state)
        share.submit(state, cache)
        again = state.copy_identity()
        assert share.query(again)
        assert again.version(Tier.SHARE) == V("1.2.0")
        assert again.signature(Tier.SHARE) == state.signature(Tier.CACHE)
        assert not share.query_in_range(state.copy_identity(), VersionRange.parse("[2.0,)"))

    def test_corrupt_archive_keeps_previous_content(self, cache, share, state):
        cache.query(state)
        share.submit(state, cache)
        content = share.layout.version_dir(share.repo_dir, state, V("1.2.0"))
        cache.link(state).write_bytes(b"this is not a zip archive")

        with pytest.raises(IntegrityError):
            share.submit(state, cache)
        assert (content / "pom.xml").exists()
        assert (content / "zlib+1.2.0+default+Win32.t").exists()
        assert [p.name for p in content.parent.iterdir()] == [content.name]

    def test_share_to_target_copies_content(self, cache, share, target, state, tmp_path):
        cache.query(state)
        share.submit(state, cache)
        assert target.submit(state, share)

        content = tmp_path / "work" / "target" / "zlib" / "Win32"
        assert (content / "bin" / "zlib.dll").read_bytes() == b"dll"
        markers = [p.name for p in content.glob("*.t")]
        assert markers == ["zlib+1.2.0+default+Win32.t"]
        assert state.signature(Tier.TARGET) == state.signature(Tier.SHARE)

    def test_newer_version_replaces_target_content(self, tmp_path, cache, target, state):
        cache.query(state)
        target.submit(state, cache)
        store_archive(cache.repo_dir, state, "1.3.0", extra={"bin/new.dll": b"new"})
        newer = state.copy_identity()
        cache.query(newer)
        target.submit(newer, cache)

        content = tmp_path / "work" / "target" / "zlib" / "Win32"
        assert (content / "bin" / "new.dll").exists()
        assert not (content / "bin" / "zlib.dll").exists()
        assert [p.name for p in content.glob("*.t")] == ["zlib+1.3.0+default+Win32.t"]
        assert target.query(state.copy_identity())

    def test_refuses_target_as_source(self, share, target, state):
        state.set_tier(Tier.TARGET, url="somewhere", version=V("1.0.0"))
        assert not share.submit(state, target)

    def test_no_archive_access(self, share, state, tmp_path):
        assert share.link(state) is None
        assert share.download(state, tmp_path / "x.zip") is False
