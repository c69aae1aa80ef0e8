"""Package identity and per-tier state."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from ..constants import Constants
from ..versioning.version import ComparableVersion
from ..versioning.versions import Versions
from .filename import PackageFilename

if TYPE_CHECKING:
    from ..common.vcs import VcsInfo
    from ..dependency.resource import DependencyResource
    from .pom import Pom


class Tier(Enum):
    """Storage tiers a package can live in."""
    REMOTE = "remote"  # shared package repository, filesystem or database backed
    CACHE = "cache"    # machine-local copy of remote archives
    SHARE = "share"    # extracted packages shared between roots
    TARGET = "target"  # extracted package inside a root's target folder
    LOCAL = "local"    # archive created by a root build
    ROOT = "root"      # the root package's own working copy


def normalize_signature(value: datetime) -> datetime:
    """UTC, truncated to whole seconds, so it survives a round-trip through file mtimes."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def now_signature() -> datetime:
    return normalize_signature(datetime.now(timezone.utc))


def signature_from_mtime(path: Union[str, Path]) -> datetime:
    return normalize_signature(datetime.fromtimestamp(int(os.stat(path).st_mtime), tz=timezone.utc))


def stamp(path: Union[str, Path], signature: datetime) -> None:
    """Set a file's access and modification time to ``signature``."""
    seconds = normalize_signature(signature).timestamp()
    os.utime(path, (seconds, seconds))


@dataclass
class TierState:
    """What one tier holds for a package; meaningful only when ``url`` is set."""
    url: str = ""
    filename: Optional[PackageFilename] = None
    version: Optional[ComparableVersion] = None
    signature: Optional[datetime] = None

    @property
    def exists(self) -> bool:
        return bool(self.url)


@dataclass
class Package:
    """Identity of a package: what is built, for which branch and platform."""
    name: str
    group: str = Constants.DEFAULT_GROUP
    branch: str = Constants.DEFAULT_BRANCH
    platform: str = Constants.DEFAULT_PLATFORM
    language: str = Constants.DEFAULT_LANGUAGE
    changeset: str = Constants.DEFAULT_CHANGESET

    @property
    def group_path(self) -> str:
        return self.group.replace(".", "/")

    @property
    def key(self) -> str:
        return f"{self.group}:{self.name}+{self.branch}+{self.platform}"


@dataclass
class PackageState(Package):
    """A package identity plus what each tier currently holds for it."""
    tiers: Dict[Tier, TierState] = field(default_factory=lambda: {tier: TierState() for tier in Tier})
    remote_storage_key: str = ""

    def tier(self, tier: Tier) -> TierState:
        return self.tiers[tier]

    def exists(self, tier: Tier) -> bool:
        return self.tiers[tier].exists

    def url(self, tier: Tier) -> str:
        return self.tiers[tier].url

    def version(self, tier: Tier) -> Optional[ComparableVersion]:
        return self.tiers[tier].version

    def signature(self, tier: Tier) -> Optional[datetime]:
        return self.tiers[tier].signature

    def filename(self, tier: Tier) -> Optional[PackageFilename]:
        return self.tiers[tier].filename

    def set_tier(
        self,
        tier: Tier,
        url: str,
        version: Optional[ComparableVersion],
        filename: Optional[PackageFilename] = None,
        signature: Optional[datetime] = None,
    ) -> None:
        self.tiers[tier] = TierState(
            url=url,
            filename=filename,
            version=version,
            signature=normalize_signature(signature) if signature is not None else None,
        )

    def clear_tier(self, tier: Tier) -> None:
        self.tiers[tier] = TierState()

    def local_url(self) -> str:
        """Directory holding the package's extracted content: Root, then Share, then Target."""
        if self.exists(Tier.ROOT):
            return self.url(Tier.ROOT)
        if self.exists(Tier.SHARE):
            return self.url(Tier.SHARE)
        if self.exists(Tier.TARGET):
            return self.url(Tier.TARGET)
        return ""

    def copy_identity(self) -> "PackageState":
        return PackageState(
            name=self.name,
            group=self.group,
            branch=self.branch,
            platform=self.platform,
            language=self.language,
            changeset=self.changeset,
        )

    def describe(self) -> str:
        parts = []
        for tier in (Tier.REMOTE, Tier.CACHE, Tier.SHARE, Tier.TARGET, Tier.LOCAL, Tier.ROOT):
            state = self.tiers[tier]
            if state.exists:
                parts.append(f"{tier.value}={state.version}")
        return f"{self.name} [{', '.join(parts) or 'nowhere'}]"


_VERSION_PREFERENCE = (Tier.ROOT, Tier.TARGET, Tier.SHARE, Tier.CACHE, Tier.LOCAL, Tier.REMOTE)


class PackageInstance:
    """A package bound to its loaded POM."""

    def __init__(self, state: PackageState, pom: "Pom", is_root: bool = False, vcs: Optional["VcsInfo"] = None):
        self.state = state
        self.pom = pom
        self.is_root = is_root
        self.vcs = vcs  # working copy provenance, roots only

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def group(self) -> str:
        return self.state.group

    @property
    def branch(self) -> str:
        return self.state.branch

    @property
    def platform(self) -> str:
        return self.state.platform

    @property
    def version(self) -> Optional[ComparableVersion]:
        """Version in use: the first tier holding it, Root first."""
        for tier in _VERSION_PREFERENCE:
            if self.state.exists(tier) and self.state.version(tier) is not None:
                return self.state.version(tier)
        return None

    @property
    def dependencies(self) -> List["DependencyResource"]:
        return self.pom.dependencies

    @property
    def versions(self) -> Versions:
        return self.pom.versions

    @property
    def platforms(self) -> List[str]:
        return self.pom.platforms

    def __repr__(self) -> str:
        return f"PackageInstance({self.name!r}, platform={self.platform!r}, version={self.version})"
