"""Tests for POM reading and declared dependency edges."""

from xml.etree import ElementTree

import pytest

from xpkg.dependency import DependencyInstance, DependencyResource
from xpkg.errors import FormatError, NotFoundError
from xpkg.package.pom import load_pom, parse_pom
from xpkg.versioning.range import VersionRange
from xpkg.versioning.version import ComparableVersion

POM = """
<Package Name="core" Group="com.virtuos.tnt" Platforms="Win32;x64">
  <Type>Library</Type>
  <Versions>
    <Current Platform="*">1.2.0</Current>
    <Current Platform="x64" Branch="next">2.0.0</Current>
  </Versions>
  <Variables><Sdk>v2</Sdk></Variables>
  <Content>
    <Item Platform="*" Src="include\\*.h" Dst="include" />
    <Item Platform="x64" Src="lib\\${Sdk}\\*.lib" Dst="lib" />
  </Content>
  <Dependencies>
    <Dependency Package="zlib" Platforms="Win32">
      <Group>org.zlib</Group>
      <Version Platform="*">[1.0,2.0)</Version>
    </Dependency>
  </Dependencies>
  <Dependency Package="${Name}-tools">
    <Version Platform="x64" Branch="next">[3.0,)</Version>
  </Dependency>
</Package>
"""


class TestParsePom:

    def test_identity(self):
        pom = parse_pom(POM)
        assert pom.name == "core"
        assert pom.group == "com.virtuos.tnt"
        assert pom.type == "Library"
        assert pom.platforms == ["Win32", "x64"]

    def test_versions(self):
        versions = parse_pom(POM).versions
        assert versions.get_for_platform("Win32") == ComparableVersion("1.2.0")
        assert versions.get_for_platform("x64", "next") == ComparableVersion("2.0.0")

    def test_content_globs(self):
        pom = parse_pom(POM)
        assert pom.content_for_platform("Win32") == [("include\\*.h", "include")]
        assert pom.content_for_platform("x64")[-1] == ("lib\\v2\\*.lib", "lib")

    def test_dependencies(self):
        zlib, tools = parse_pom(POM).dependencies
        assert zlib.name == "zlib" and zlib.group == "org.zlib"
        assert zlib.is_for_platform("win32") and not zlib.is_for_platform("x64")
        assert tools.name == "core-tools"
        assert tools.is_for_platform("anything")

    @pytest.mark.parametrize("text", ["<Package", "<Project Name='x'/>", "<Package />"])
    def test_invalid(self, text):
        with pytest.raises(FormatError):
            parse_pom(text)

    def test_load_from_directory(self, tmp_path):
        (tmp_path / "pom.xml").write_text(POM, encoding="utf-8")
        assert load_pom(tmp_path).name == "core"

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            load_pom(tmp_path)


class TestDependencyResource:

    def test_ranges_per_platform_and_branch(self):
        node = ElementTree.fromstring(
            '<Dependency Package="zlib">'
            '<Version Platform="*">[1.0,2.0)</Version>'
            '<Version Platform="x64" Branch="next">[3.0,)</Version>'
            "</Dependency>"
        )
        resource = DependencyResource.from_element(node)
        assert resource.get_version_range("Win32") == VersionRange.parse("[1.0,2.0)")
        assert resource.get_version_range("x64") == VersionRange.parse("[3.0,)")
        assert resource.get_branch("x64") == "next"
        assert resource.get_branch("Win32") == "default"

    def test_default_range(self):
        resource = DependencyResource("zlib")
        assert resource.get_version_range("Win32") == VersionRange.default()

    def test_malformed_range(self):
        node = ElementTree.fromstring('<Dependency Package="zlib"><Version>[2.0,1.0]</Version></Dependency>')
        with pytest.raises(FormatError):
            DependencyResource.from_element(node)

    def test_wildcard_platform_filter(self):
        assert DependencyResource("zlib", platforms=["*"]).is_for_platform("x64")
        assert not DependencyResource("zlib", platforms=["Win32"]).is_for_platform("x64")

    def test_instance(self):
        resource = DependencyResource("ZLib", group="org.zlib", platforms=["x64"])
        resource.set_version_range(VersionRange.parse("[1.2,)"), platform="x64", branch="next")
        bound = DependencyInstance("x64", resource)
        assert bound.key == ("zlib", "x64")
        assert bound.branch == "next"
        assert bound.version_range == VersionRange.parse("[1.2,)")
        assert bound.group == "org.zlib"

    def test_equality(self):
        a = DependencyResource("zlib", platforms=["Win32"])
        b = DependencyResource("ZLIB", platforms=["win32"])
        assert a == b and hash(a) == hash(b)
