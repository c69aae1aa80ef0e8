"""Tests for tier path layouts."""

from pathlib import Path

from xpkg.package.models import Package
from xpkg.repository import layout as layouts
from xpkg.versioning.version import ComparableVersion


def _package():
    return Package(name="zlib", group="com.virtuos.tnt", branch="default", platform="Win32")


class TestLayouts:

    def test_default(self):
        package = _package()
        assert layouts.DEFAULT.root_dir("/repo", package) == Path("/repo/com/virtuos/tnt/zlib")
        assert layouts.DEFAULT.version_dir("/repo", package, ComparableVersion("1.2")) == Path(
            "/repo/com/virtuos/tnt/zlib/version/1/2/0"
        )

    def test_share(self):
        version_dir = layouts.SHARE.version_dir("/share", _package(), ComparableVersion("1.2.0"))
        assert version_dir == Path("/share/com.virtuos.tnt/zlib/zlib+1.2.0+default+Win32")

    def test_target(self):
        package = _package()
        assert layouts.TARGET.root_dir("/work/target", package) == Path("/work/target/zlib")
        assert layouts.TARGET.version_dir("/work/target", package, ComparableVersion("3.0")) == Path(
            "/work/target/zlib/Win32"
        )

    def test_local_keeps_every_version_together(self):
        package = _package()
        root = layouts.LOCAL.root_dir("/work", package)
        assert root == Path("/work/target/zlib/build/Win32")
        assert layouts.LOCAL.version_dir("/work", package, ComparableVersion("9.9")) == root

    def test_filename(self):
        filename = layouts.DEFAULT.filename(_package(), ComparableVersion("1.0.0"))
        assert filename.filename == "zlib+1.0.0+default+Win32.zip"
