"""Tests for artifact filename parsing."""

from datetime import datetime

import pytest

from xpkg.errors import FormatError
from xpkg.package.filename import PackageFilename
from xpkg.versioning.version import ComparableVersion


class TestPackageFilename:
    """name+version+branch+platform.zip"""

    def test_parse_full(self):
        parsed = PackageFilename.parse("core+1.2.0+default+Win32.zip")
        assert parsed.name == "core"
        assert parsed.version == ComparableVersion("1.2.0")
        assert parsed.branch == "default"
        assert parsed.platform == "Win32"
        assert parsed.created is None
        assert parsed.filename == "core+1.2.0+default+Win32.zip"

    def test_parse_with_directory_and_defaults(self):
        parsed = PackageFilename.parse("some/dir/core+1.2")
        assert parsed.version == ComparableVersion("1.2")
        assert parsed.branch == "default"
        assert parsed.platform == "Win32"
        assert parsed.extension == ".zip"

    def test_parse_with_timestamp(self):
        name = "core+1.2.0.2024.3.5.14.2.9+main+x64.zip"
        parsed = PackageFilename.parse(name)
        assert parsed.version == ComparableVersion("1.2.0")
        assert parsed.created == datetime(2024, 3, 5, 14, 2, 9)
        assert parsed.filename == name

    @pytest.mark.parametrize(
        "name",
        [
            "core.zip",
            "core+1.2.3.4+default+Win32.zip",
            "core+x.y+default+Win32.zip",
            "core+1.2.0.2024.13.5.14.2.9+default+Win32.zip",
            "a+1.0+b+c+d.zip",
        ],
    )
    def test_malformed(self, name):
        with pytest.raises(FormatError):
            PackageFilename.parse(name)

    def test_with_version(self):
        parsed = PackageFilename.parse("core+1.0.0+default+Win32.zip")
        bumped = parsed.with_version(ComparableVersion("1.1.0"))
        assert bumped.stem == "core+1.1.0+default+Win32"
        assert parsed.version == ComparableVersion("1.0.0")
