"""Tests for archive access and the dependencies.info manifest."""

import zipfile

import pytest

from xpkg.errors import FormatError, IntegrityError
from xpkg.package.archive import (
    extract_archive,
    parse_dependencies_info,
    read_entry,
    read_entry_text,
    render_dependencies_info,
    retrieve_dependencies,
    write_archive,
)
from xpkg.package.models import Package
from xpkg.versioning.version import ComparableVersion

V = ComparableVersion

MANIFEST = (
    "name=app, group=com.virtuos.tnt, language=C++, branch=default, platform=Win32, version=3.0.0\n"
    "name=zlib, group=org.zlib, language=C++, branch=default, platform=Win32, version=1.2.11\n"
    "png, version=1.6\n"
    "\n"
    "name=ignored, version=9.9.9\n"
)


class TestArchive:

    def test_write_and_read_entries(self, tmp_path):
        source = tmp_path / "readme.txt"
        source.write_text("hello", encoding="utf-8")
        archive = write_archive(tmp_path / "out" / "a.zip", {"pom.xml": b"<Package/>", "docs/readme.txt": source})

        assert read_entry(archive, "pom.xml") == b"<Package/>"
        assert read_entry_text(archive, "docs/readme.txt") == "hello"
        assert read_entry(archive, "vcs.info") is None
        assert [p.name for p in archive.parent.iterdir()] == ["a.zip"]

    def test_corrupt_archive(self, tmp_path):
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"nope")
        with pytest.raises(IntegrityError):
            read_entry(bad, "pom.xml")
        with pytest.raises(IntegrityError):
            extract_archive(bad, tmp_path / "out")

    def test_extract(self, tmp_path):
        archive = write_archive(tmp_path / "a.zip", {"bin/x.dll": b"x", "pom.xml": b"<Package/>"})
        names = extract_archive(archive, tmp_path / "out")
        assert sorted(names) == ["bin/x.dll", "pom.xml"]
        assert (tmp_path / "out" / "bin" / "x.dll").read_bytes() == b"x"

    def test_entries_outside_destination_are_rejected(self, tmp_path):
        archive = tmp_path / "evil.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("../escape.txt", b"x")
        with pytest.raises(IntegrityError):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "escape.txt").exists()


class TestDependenciesInfo:

    def test_parse_skips_root_and_stops_at_blank_line(self):
        entries = parse_dependencies_info(MANIFEST)
        assert [(p.name, p.group, str(v)) for p, v in entries] == [
            ("zlib", "org.zlib", "1.2.11"),
            ("png", "com.virtuos.tnt", "1.6"),
        ]

    def test_render(self):
        root = Package(name="app")
        text = render_dependencies_info(root, V("3"), [(Package(name="zlib", group="org.zlib"), V("1.2.11"))])
        lines = text.splitlines()
        assert lines[0] == "name=app, group=com.virtuos.tnt, language=C++, branch=default, platform=Win32, version=3.0.0"
        assert lines[1].startswith("name=zlib, group=org.zlib,")
        assert [p.name for p, _ in parse_dependencies_info(text)] == ["zlib"]

    def test_line_without_name(self):
        with pytest.raises(FormatError):
            parse_dependencies_info("root\nversion=1.0, group=x\n")

    def test_retrieve_from_archive(self, tmp_path):
        archive = write_archive(tmp_path / "a.zip", {"dependencies.info": MANIFEST.encode("utf-8")})
        assert len(retrieve_dependencies(archive)) == 2
        empty = write_archive(tmp_path / "b.zip", {"pom.xml": b"<Package/>"})
        assert retrieve_dependencies(empty) is None
