"""Archive-storing tiers: Cache, Local and filesystem Remote.

The signature of a stored package is the modification time of its archive.
Submits set it to the source tier's signature; a local build sets it by
writing the archive.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..common.logging_utils import Timer, extra_context, is_debug_enabled
from ..constants import Constants
from ..errors import FormatError, IntegrityError, TransportError
from ..package.filename import PackageFilename
from ..package.models import PackageState, Tier, now_signature, signature_from_mtime, stamp
from ..versioning.range import VersionRange
from ..versioning.version import ComparableVersion
from . import layout as layouts
from .base import PackageRepository, fetch_artifact, find_best_version
from .index import VersionIndex, archive_fingerprint, archive_scanner

logger = logging.getLogger(__name__)


class FileSystemRepository(PackageRepository):
    """Stores archives under ``repo_dir`` following a layout.

    With ``require_root`` set, a missing ``repo_dir`` is treated as an
    unreachable tier (a network share that is not mounted).
    """

    def __init__(
        self,
        repo_dir: Union[str, Path],
        tier: Tier,
        layout: layouts.Layout = layouts.DEFAULT,
        require_root: bool = False,
    ):
        super().__init__(tier)
        self.repo_dir = Path(repo_dir)
        self.layout = layout
        self.require_root = require_root

    def _check_available(self) -> None:
        if self.require_root and not self.repo_dir.is_dir():
            raise TransportError(f"{self.tier.value} repository {self.repo_dir} is not reachable")

    def index(self, state: PackageState) -> VersionIndex:
        root = self.layout.root_dir(self.repo_dir, state)
        return VersionIndex(
            root,
            state.branch,
            state.platform,
            archive_scanner(root, state.name, state.branch, state.platform),
            archive_fingerprint(root),
        )

    def _locate(self, state: PackageState, version: ComparableVersion) -> Optional[Path]:
        version_dir = self.layout.version_dir(self.repo_dir, state, version)
        expected = version_dir / self.layout.filename(state, version).filename
        if expected.is_file():
            return expected
        if not version_dir.is_dir():
            return None
        for path in sorted(version_dir.glob(f"*{Constants.ARCHIVE_EXTENSION}")):
            try:
                parsed = PackageFilename.parse(path.name)
            except FormatError:
                continue
            if (
                parsed.name.lower() == state.name.lower()
                and parsed.branch.lower() == state.branch.lower()
                and parsed.platform.lower() == state.platform.lower()
                and parsed.version == version
            ):
                return path
        return None

    def query_in_range(self, state: PackageState, version_range: VersionRange) -> bool:
        self._check_available()
        try:
            return self._query_in_range(state, version_range)
        except OSError as exc:
            raise TransportError(f"{self.tier.value} repository {self.repo_dir} is not readable: {exc}") from exc

    def _query_in_range(self, state: PackageState, version_range: VersionRange) -> bool:
        index = self.index(state)
        versions = index.load()
        best = find_best_version(versions, version_range)
        path = self._locate(state, best) if best is not None else None
        if best is not None and path is None:
            logger.warning("Index of %s lists %s %s but the archive is missing", self.tier.value, state.name, best)
            try:
                index.mark_dirty()
            except OSError as exc:
                logger.debug("Cannot mark index of %s dirty: %s", self.tier.value, exc)
            best = find_best_version(index.scan(), version_range)
            path = self._locate(state, best) if best is not None else None
        if path is None:
            if is_debug_enabled(logger):
                logger.debug(
                    "No eligible version",
                    extra=extra_context(
                        event="query", component="repository", tier=self.tier.value,
                        package=state.name, range=str(version_range), outcome="not_found",
                    ),
                )
            return False
        state.set_tier(
            self.tier,
            url=str(path.parent),
            version=best,
            filename=PackageFilename.parse(path.name),
            signature=signature_from_mtime(path),
        )
        return True

    def link(self, state: PackageState) -> Optional[Path]:
        if not state.exists(self.tier) or state.filename(self.tier) is None:
            return None
        path = Path(state.url(self.tier)) / state.filename(self.tier).filename
        return path if path.is_file() else None

    def download(self, state: PackageState, destination: Path) -> bool:
        self._check_available()
        source = self.link(state)
        if source is None:
            return False
        _copy_verified(source, Path(destination))
        return True

    def submit(self, state: PackageState, source: PackageRepository) -> bool:
        self._check_available()
        version = state.version(source.tier)
        if not state.exists(source.tier) or version is None:
            return False

        version_dir = self.layout.version_dir(self.repo_dir, state, version)
        version_dir.mkdir(parents=True, exist_ok=True)
        filename = self.layout.filename(state, version)
        destination = version_dir / filename.filename
        with Timer() as timer:
            with fetch_artifact(source, state, version_dir) as archive:
                if archive.resolve() != destination.resolve():
                    _copy_verified(archive, destination)

        self.index(state).mark_dirty()
        signature = state.signature(source.tier) or now_signature()
        stamp(destination, signature)
        state.set_tier(self.tier, url=str(version_dir), version=version, filename=filename, signature=signature)
        logger.info(
            "%s %s copied from %s to %s",
            state.name,
            version,
            source.tier.value,
            self.tier.value,
            extra=extra_context(
                event="submit", component="repository", tier=self.tier.value,
                package=state.name, outcome="success", duration_ms=timer.duration_ms(),
            ),
        )
        return True


def _copy_verified(source: Path, destination: Path) -> None:
    """Copy through a temporary file; a size mismatch leaves ``destination`` untouched."""
    expected = source.stat().st_size
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=destination.name, suffix=".tmp", dir=destination.parent)
    os.close(fd)
    try:
        shutil.copyfile(source, tmp_name)
        copied = os.path.getsize(tmp_name)
        if copied != expected:
            raise IntegrityError(f"Copy of {source} is {copied} bytes, expected {expected}")
        os.replace(tmp_name, destination)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
