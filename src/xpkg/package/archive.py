"""Zip archive access and the ``dependencies.info`` manifest."""

from __future__ import annotations

import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from ..constants import Constants
from ..errors import FormatError, IntegrityError
from ..versioning.version import ComparableVersion
from .models import Package

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_entry(archive: PathLike, entry: str) -> Optional[bytes]:
    """Return the bytes of ``entry``, or None when the archive does not contain it."""
    try:
        with zipfile.ZipFile(archive) as zf:
            try:
                return zf.read(entry)
            except KeyError:
                return None
    except zipfile.BadZipFile as exc:
        raise IntegrityError(f"Corrupt archive {archive}: {exc}") from exc


def read_entry_text(archive: PathLike, entry: str) -> Optional[str]:
    data = read_entry(archive, entry)
    return None if data is None else data.decode("utf-8")


def write_archive(archive: PathLike, files: Mapping[str, Union[PathLike, bytes]]) -> Path:
    """Write a new archive; values are file paths or raw bytes keyed by entry name.

    The archive is built next to its destination and renamed into place.
    """
    archive = Path(archive)
    archive.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=archive.name, suffix=".tmp", dir=archive.parent)
    os.close(fd)
    try:
        with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry, source in files.items():
                if isinstance(source, bytes):
                    zf.writestr(entry, source)
                else:
                    zf.write(source, entry)
        os.replace(tmp_name, archive)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise
    return archive


def extract_archive(archive: PathLike, destination: PathLike) -> List[str]:
    """Extract every entry below ``destination``; entries escaping it are rejected."""
    destination = Path(destination).resolve()
    try:
        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
            for name in names:
                target = (destination / name).resolve()
                if target != destination and destination not in target.parents:
                    raise IntegrityError(f"Archive {archive} has an entry outside its root: {name}")
            bad = zf.testzip()
            if bad is not None:
                raise IntegrityError(f"Archive {archive} has a corrupt entry: {bad}")
            zf.extractall(destination)
            return names
    except zipfile.BadZipFile as exc:
        raise IntegrityError(f"Corrupt archive {archive}: {exc}") from exc


def _describe(package: Package, version: ComparableVersion) -> str:
    return (
        f"name={package.name}, group={package.group}, language={package.language}, "
        f"branch={package.branch}, platform={package.platform}, "
        f"version={'.'.join(version.to_strings(3))}"
    )


def render_dependencies_info(
    root: Package,
    root_version: ComparableVersion,
    dependencies: Iterable[Tuple[Package, ComparableVersion]],
) -> str:
    """First line describes the root, one line per dependency follows."""
    lines = [_describe(root, root_version)]
    lines.extend(_describe(package, version) for package, version in dependencies)
    return "\n".join(lines) + "\n"


def parse_dependencies_info(text: str) -> List[Tuple[Package, ComparableVersion]]:
    """Parse manifest text; the root line is skipped and parsing stops at the first blank line."""
    entries: List[Tuple[Package, ComparableVersion]] = []
    lines = text.splitlines()[1:]
    for line in lines:
        if not line.strip():
            break
        fields = {}
        parts = [p.strip() for p in line.split(",") if p.strip()]
        for index, part in enumerate(parts):
            key, sep, value = part.partition("=")
            if not sep:
                if index == 0:
                    fields["name"] = key.strip()
                    continue
                raise FormatError(f"Invalid dependencies.info line: '{line}'")
            fields[key.strip()] = value.strip()
        if not fields.get("name"):
            raise FormatError(f"Invalid dependencies.info line, no name: '{line}'")
        version_items = [v for v in fields.get("version", Constants.DEFAULT_VERSION).split(".") if v]
        version = ComparableVersion(".".join(version_items[:3]))
        package = Package(
            name=fields["name"],
            group=fields.get("group", Constants.DEFAULT_GROUP),
            branch=fields.get("branch", Constants.DEFAULT_BRANCH),
            platform=fields.get("platform", Constants.DEFAULT_PLATFORM),
            language=fields.get("language", Constants.DEFAULT_LANGUAGE),
        )
        entries.append((package, version))
    return entries


def retrieve_dependencies(archive: PathLike) -> Optional[List[Tuple[Package, ComparableVersion]]]:
    """Read the manifest stored in an archive; None when the archive has none."""
    text = read_entry_text(archive, Constants.DEPENDENCIES_INFO_FILE)
    if text is None:
        logger.warning("Archive %s has no %s", archive, Constants.DEPENDENCIES_INFO_FILE)
        return None
    return parse_dependencies_info(text)
