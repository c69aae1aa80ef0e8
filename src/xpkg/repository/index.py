"""Sorted version listing cached per package root.

The index file ``versions.<branch>.<platform>.cache`` lists one version per
line, ascending, after a ``# <fingerprint>`` header line. The fingerprint is a
hash of the archive names under the package root, so archives written by a
local build or another machine are noticed. The index is rebuilt when it is
missing, when its fingerprint no longer matches storage, or when a
``*.dirty`` marker exists in the package root. Rebuilds are serialized across
processes with a ``.writelock`` file that is reclaimed once it is older than
the lock timeout.
"""

from __future__ import annotations

import hashlib
import logging
import os
import socket
import tempfile
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..errors import FormatError
from ..package.filename import PackageFilename
from ..versioning.version import ComparableVersion

logger = logging.getLogger(__name__)

Scanner = Callable[[], Iterable[ComparableVersion]]
Fingerprint = Callable[[], str]


def archive_scanner(version_root: Path, name: str, branch: str, platform: str) -> Scanner:
    """Scan ``version_root`` recursively for archives of a package, branch and platform."""

    def scan() -> Iterable[ComparableVersion]:
        if not version_root.is_dir():
            return []
        found = []
        for path in version_root.rglob(f"*{Constants.ARCHIVE_EXTENSION}"):
            try:
                parsed = PackageFilename.parse(path.name)
            except FormatError:
                logger.debug("Ignoring unrecognized archive %s", path)
                continue
            if (
                parsed.name.lower() == name.lower()
                and parsed.platform.lower() == platform.lower()
                and parsed.branch.lower() == branch.lower()
            ):
                found.append(parsed.version)
        return found

    return scan


def archive_fingerprint(version_root: Path) -> Fingerprint:
    """Hash of the archive paths below ``version_root``."""

    def fingerprint() -> str:
        digest = hashlib.sha1()
        if version_root.is_dir():
            names = sorted(p.relative_to(version_root).as_posix() for p in version_root.rglob(f"*{Constants.ARCHIVE_EXTENSION}"))
            for name in names:
                digest.update(name.encode("utf-8"))
                digest.update(b"\n")
        return digest.hexdigest()

    return fingerprint


class VersionIndex:
    """Lock-protected, lazily rebuilt version listing of one package root."""

    def __init__(
        self,
        root_dir: Path,
        branch: str,
        platform: str,
        scanner: Scanner,
        fingerprint: Optional[Fingerprint] = None,
    ):
        self.root_dir = Path(root_dir)
        self.branch = branch
        self.platform = platform
        self._scanner = scanner
        self._fingerprint = fingerprint

    @property
    def path(self) -> Path:
        return self.root_dir / Constants.INDEX_FILE_PATTERN.format(branch=self.branch, platform=self.platform)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + Constants.INDEX_LOCK_SUFFIX)

    def mark_dirty(self, host: Optional[str] = None) -> None:
        """Flag the index for rebuild; one marker per machine."""
        self.root_dir.mkdir(parents=True, exist_ok=True)
        marker = self.root_dir / f"{host or socket.gethostname()}{Constants.DIRTY_EXTENSION}"
        marker.touch(exist_ok=True)

    def is_stale(self) -> bool:
        if not self.path.exists():
            return True
        return any(self.root_dir.glob(f"*{Constants.DIRTY_EXTENSION}"))

    def scan(self) -> List[ComparableVersion]:
        """Full rescan of storage, bypassing the index file."""
        return sorted(set(self._scanner()))

    def _create_lock(self) -> bool:
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        try:
            os.write(fd, f"{socket.gethostname()} {os.getpid()}\n".encode("utf-8"))
        finally:
            os.close(fd)
        return True

    def acquire_lock(self) -> bool:
        """Create the write lock, reclaiming it when its holder went away long ago."""
        if self._create_lock():
            return True
        try:
            age = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return self._create_lock()
        if age <= Constants.INDEX_LOCK_TIMEOUT_SEC:
            return False
        logger.warning(
            "Reclaiming stale index lock %s (age %.0fs)",
            self.lock_path,
            age,
            extra=extra_context(event="index_lock", component="index", outcome="stolen"),
        )
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        return self._create_lock()

    def release_lock(self) -> None:
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass

    def _rebuild_and_load(self) -> List[ComparableVersion]:
        try:
            versions = self.rebuild()
        except PermissionError as exc:
            # read-only storage is still queryable
            logger.debug("Cannot write version index %s: %s", self.path, exc)
            versions = None
        return versions if versions is not None else self.scan()

    def rebuild(self) -> Optional[List[ComparableVersion]]:
        """Rescan and rewrite the index; None when another writer holds the lock."""
        if not self.root_dir.is_dir():
            return []
        if not self.acquire_lock():
            return None
        try:
            for marker in self.root_dir.glob(f"*{Constants.DIRTY_EXTENSION}"):
                try:
                    marker.unlink()
                except FileNotFoundError:
                    pass
            # fingerprint first: an archive landing mid-scan makes the next load rebuild
            key = self._fingerprint() if self._fingerprint is not None else None
            versions = self.scan()
            fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=self.root_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    if key is not None:
                        handle.write(f"# {key}\n")
                    for version in versions:
                        handle.write(f"{version}\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
            logger.info(
                "Rebuilt version index %s (%d versions)",
                self.path,
                len(versions),
                extra=extra_context(event="index_rebuild", component="index", outcome="success"),
            )
            return versions
        finally:
            self.release_lock()

    def _read(self) -> Tuple[Optional[str], List[ComparableVersion]]:
        key = None
        versions = []
        with open(self.path, "r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                if line.startswith("#"):
                    key = line[1:].strip()
                    continue
                versions.append(ComparableVersion(line))
        return key, sorted(versions)

    def load(self) -> List[ComparableVersion]:
        """Return available versions in ascending order."""
        if not self.root_dir.is_dir():
            return []
        if self.is_stale():
            return self._rebuild_and_load()

        for attempt in range(Constants.INDEX_READ_RETRIES):
            try:
                key, versions = self._read()
            except FileNotFoundError:
                break
            except FormatError as exc:
                logger.warning("Corrupt version index %s: %s", self.path, exc)
                break
            except OSError as exc:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Version index read failed",
                        extra=extra_context(event="index_read", component="index", attempt=attempt + 1, error=str(exc)),
                    )
                time.sleep(Constants.INDEX_READ_RETRY_DELAY_SEC)
                continue
            if self._fingerprint is not None and key != self._fingerprint():
                logger.info(
                    "Version index %s is out of date with storage",
                    self.path,
                    extra=extra_context(event="index_read", component="index", outcome="outdated"),
                )
                return self._rebuild_and_load()
            return versions
        return self.scan()
