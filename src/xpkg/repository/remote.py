"""The Remote tier."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..common.logging_utils import Timer, extra_context
from ..package.models import PackageState, Tier, now_signature
from ..versioning.range import VersionRange
from . import layout as layouts
from .base import PackageRepository, fetch_artifact
from .database import PackageDatabase
from .filesystem import FileSystemRepository

logger = logging.getLogger(__name__)


class RemoteDbRepository(PackageRepository):
    """Remote tier backed by a package database."""

    def __init__(self, database: PackageDatabase, scratch_dir: Optional[Union[str, Path]] = None):
        super().__init__(Tier.REMOTE)
        self.database = database
        self.scratch_dir = Path(scratch_dir) if scratch_dir else Path(tempfile.gettempdir())

    def query_in_range(self, state: PackageState, version_range: VersionRange) -> bool:
        record = self.database.find_in_range(state, version_range)
        if record is None:
            return False
        state.remote_storage_key = record.storage_key
        state.set_tier(
            Tier.REMOTE,
            url=self.database.describe(record.storage_key),
            version=record.version,
            signature=record.signature,
        )
        return True

    def link(self, state: PackageState) -> Optional[Path]:
        return None

    def download(self, state: PackageState, destination: Path) -> bool:
        if not state.exists(Tier.REMOTE) or not state.remote_storage_key:
            return False
        return self.database.download(state.remote_storage_key, Path(destination))

    def submit(self, state: PackageState, source: PackageRepository) -> bool:
        version = state.version(source.tier)
        if not state.exists(source.tier) or version is None:
            return False
        signature = state.signature(source.tier) or now_signature()
        with Timer() as timer:
            with fetch_artifact(source, state, self.scratch_dir) as archive:
                record = self.database.upload(state, version, archive, signature)
        state.remote_storage_key = record.storage_key
        state.set_tier(
            Tier.REMOTE,
            url=self.database.describe(record.storage_key),
            version=record.version,
            signature=record.signature,
        )
        logger.info(
            "%s %s uploaded from %s",
            state.name,
            version,
            source.tier.value,
            extra=extra_context(
                event="submit", component="repository", tier=Tier.REMOTE.value,
                package=state.name, outcome="success", duration_ms=timer.duration_ms(),
            ),
        )
        return True


def remote_filesystem(repo_dir: Union[str, Path]) -> FileSystemRepository:
    """Remote tier on a shared filesystem; an unmounted share is unreachable."""
    return FileSystemRepository(repo_dir, Tier.REMOTE, layouts.DEFAULT, require_root=True)
