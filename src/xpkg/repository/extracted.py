"""Extracting tiers: Share and Target.

Each version lives in its own directory next to a ``<stem>.t`` marker whose
modification time is the signature of the tier it came from. Content is
extracted from an archive, or copied from another extracted tier (Share to
Target).
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..common.logging_utils import Timer, extra_context
from ..constants import Constants
from ..errors import FormatError, IntegrityError
from ..package.archive import extract_archive
from ..package.filename import PackageFilename
from ..package.models import PackageState, Tier, now_signature, signature_from_mtime, stamp
from ..versioning.range import VersionRange
from ..versioning.version import ComparableVersion
from . import layout as layouts
from .base import PackageRepository, fetch_artifact, find_best_version

logger = logging.getLogger(__name__)

Candidate = Tuple[Path, PackageFilename]


class ExtractedRepository(PackageRepository):
    """Holds unpacked package content; it never serves archives."""

    def __init__(self, repo_dir: Union[str, Path], tier: Tier, layout: layouts.Layout):
        super().__init__(tier)
        self.repo_dir = Path(repo_dir)
        self.layout = layout

    def _candidates(self, state: PackageState) -> Dict[ComparableVersion, Candidate]:
        """Markers of this package's branch and platform, newest marker per version."""
        root = self.layout.root_dir(self.repo_dir, state)
        found: Dict[ComparableVersion, Candidate] = {}
        if not root.is_dir():
            return found
        for marker in root.glob(f"*/*{Constants.MARKER_EXTENSION}"):
            try:
                parsed = PackageFilename.parse(marker.stem)
            except FormatError:
                continue
            if (
                parsed.name.lower() != state.name.lower()
                or parsed.branch.lower() != state.branch.lower()
                or parsed.platform.lower() != state.platform.lower()
            ):
                continue
            if marker.parent != self.layout.version_dir(self.repo_dir, state, parsed.version):
                continue
            current = found.get(parsed.version)
            if current is None or marker.stat().st_mtime > current[0].stat().st_mtime:
                found[parsed.version] = (marker, parsed)
        return found

    def query_in_range(self, state: PackageState, version_range: VersionRange) -> bool:
        candidates = self._candidates(state)
        best = find_best_version(sorted(candidates), version_range)
        if best is None:
            return False
        marker, parsed = candidates[best]
        state.set_tier(
            self.tier,
            url=str(marker.parent),
            version=best,
            filename=PackageFilename(
                name=parsed.name,
                version=parsed.version,
                branch=parsed.branch,
                platform=parsed.platform,
                created=parsed.created,
            ),
            signature=signature_from_mtime(marker),
        )
        return True

    def link(self, state: PackageState) -> Optional[Path]:
        return None

    def download(self, state: PackageState, destination: Path) -> bool:
        logger.debug("%s tier holds extracted content only, nothing to download", self.tier.value)
        return False

    def submit(self, state: PackageState, source: PackageRepository) -> bool:
        if source.tier == Tier.TARGET:
            logger.warning("Refusing to submit %s from the target tier", state.name)
            return False
        version = state.version(source.tier)
        if not state.exists(source.tier) or version is None:
            return False

        filename = state.filename(source.tier) or self.layout.filename(state, version)
        destination = self.layout.version_dir(self.repo_dir, state, version)
        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}.", dir=destination.parent))
        with Timer() as timer:
            try:
                if isinstance(source, ExtractedRepository):
                    entries = _copy_content(Path(state.url(source.tier)), staging)
                else:
                    with fetch_artifact(source, state, destination.parent) as archive:
                        entries = extract_archive(archive, staging)
                _swap_directory(staging, destination)
            finally:
                if staging.exists():
                    shutil.rmtree(staging, ignore_errors=True)

        marker_name = filename.stem + Constants.MARKER_EXTENSION
        for old in destination.glob(f"*{Constants.MARKER_EXTENSION}"):
            if old.name.lower() != marker_name.lower():
                old.unlink()
        marker = destination / marker_name
        marker.touch()
        signature = state.signature(source.tier) or now_signature()
        stamp(marker, signature)

        state.set_tier(self.tier, url=str(destination), version=version, filename=filename, signature=signature)
        logger.info(
            "%s %s extracted from %s to %s (%d entries)",
            state.name,
            version,
            source.tier.value,
            self.tier.value,
            len(entries),
            extra=extra_context(
                event="submit", component="repository", tier=self.tier.value,
                package=state.name, outcome="success", duration_ms=timer.duration_ms(),
            ),
        )
        return True


def _copy_content(source_dir: Path, staging: Path) -> List[str]:
    """Copy extracted content without its markers; returns the copied file names."""
    if not source_dir.is_dir():
        raise IntegrityError(f"Extracted content {source_dir} is missing")
    shutil.copytree(
        source_dir,
        staging,
        ignore=shutil.ignore_patterns(f"*{Constants.MARKER_EXTENSION}"),
        dirs_exist_ok=True,
    )
    return [str(p.relative_to(staging)) for p in staging.rglob("*") if p.is_file()]


def _swap_directory(staging: Path, destination: Path) -> None:
    """Move ``staging`` to ``destination``, replacing any previous content."""
    backup: Optional[Path] = None
    if destination.exists():
        backup = destination.with_name(destination.name + ".old")
        if backup.exists():
            shutil.rmtree(backup)
        destination.rename(backup)
    try:
        staging.rename(destination)
    except OSError:
        if backup is not None:
            backup.rename(destination)
        raise
    if backup is not None:
        shutil.rmtree(backup, ignore_errors=True)
