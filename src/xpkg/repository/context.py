"""Explicit holder for the tiers used by one resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ..config import Settings
from ..constants import Constants
from ..package.models import Tier
from . import layout as layouts
from .base import PackageRepository
from .database import HttpPackageDatabase
from .extracted import ExtractedRepository
from .filesystem import FileSystemRepository
from .remote import RemoteDbRepository, remote_filesystem

logger = logging.getLogger(__name__)


@dataclass
class ResolutionContext:
    """Repositories and defaults shared by the negotiator and the dependency tree.

    Any tier may be None; negotiation skips missing tiers.
    """
    remote: Optional[PackageRepository] = None
    cache: Optional[PackageRepository] = None
    share: Optional[PackageRepository] = None
    target: Optional[PackageRepository] = None
    local: Optional[PackageRepository] = None
    root_dir: Optional[Path] = None
    platform: str = Constants.DEFAULT_PLATFORM
    branch: str = Constants.DEFAULT_BRANCH

    def repository(self, tier: Tier) -> Optional[PackageRepository]:
        return self.repositories().get(tier)

    def repositories(self) -> Dict[Tier, PackageRepository]:
        candidates = {
            Tier.REMOTE: self.remote,
            Tier.CACHE: self.cache,
            Tier.SHARE: self.share,
            Tier.TARGET: self.target,
            Tier.LOCAL: self.local,
        }
        return {tier: repo for tier, repo in candidates.items() if repo is not None}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResolutionContext":
        """Create the tiers described by ``settings``.

        An ``http(s)://`` remote is a package database, anything else a
        directory. The Target and Local tiers live below the root directory.
        """
        remote: Optional[PackageRepository] = None
        if settings.remote_is_http:
            remote = RemoteDbRepository(HttpPackageDatabase(settings.remote_url, token=settings.remote_token or None))
        elif settings.remote_url:
            remote = remote_filesystem(settings.path(settings.remote_url))

        cache_dir = settings.path(settings.cache_dir)
        share_dir = settings.path(settings.share_dir)
        root_dir = settings.path(settings.root_dir) or Path.cwd()

        context = cls(
            remote=remote,
            cache=FileSystemRepository(cache_dir, Tier.CACHE, layouts.DEFAULT) if cache_dir else None,
            share=ExtractedRepository(share_dir, Tier.SHARE, layouts.SHARE) if share_dir else None,
            target=ExtractedRepository(root_dir / "target", Tier.TARGET, layouts.TARGET),
            local=FileSystemRepository(root_dir, Tier.LOCAL, layouts.LOCAL),
            root_dir=root_dir,
            platform=settings.platform,
            branch=settings.branch,
        )
        logger.debug("Resolution context tiers: %s", sorted(t.value for t in context.repositories()))
        return context
