"""Common interface of repository tiers."""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from bisect import bisect_left, bisect_right
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..errors import IntegrityError
from ..package.models import PackageState, Tier
from ..versioning.range import VersionRange
from ..versioning.version import ComparableVersion

logger = logging.getLogger(__name__)


def find_best_version(versions: Sequence[ComparableVersion], version_range: VersionRange) -> Optional[ComparableVersion]:
    """Highest version of an ascending list that lies in ``version_range``.

    The highest version is probed first. Otherwise the range is clamped to
    the list's bounds and each sub-range, newest first, is searched at or
    below its upper bound.
    """
    if not versions:
        return None
    highest = versions[-1]
    if version_range.is_in_range(highest):
        return highest

    ranges, pinned = version_range.split(versions[0], highest)
    if pinned is not None:
        i = bisect_left(versions, pinned)
        if i < len(versions) and versions[i] == pinned and version_range.is_in_range(versions[i]):
            return versions[i]
        return None

    for sub_range in reversed(ranges):
        if sub_range.include_upper:
            i = bisect_right(versions, sub_range.upper)
        else:
            i = bisect_left(versions, sub_range.upper)
        if i > 0 and sub_range.is_in_range(versions[i - 1]):
            return versions[i - 1]
    return None


class PackageRepository(ABC):
    """A storage tier able to answer version queries and exchange artifacts."""

    def __init__(self, tier: Tier):
        self.tier = tier

    def query(self, state: PackageState) -> bool:
        """Find the best version with the default ``[1.0,)`` range."""
        return self.query_in_range(state, VersionRange.default())

    @abstractmethod
    def query_in_range(self, state: PackageState, version_range: VersionRange) -> bool:
        """Fill this tier's entry of ``state`` with the best version in range."""

    @abstractmethod
    def link(self, state: PackageState) -> Optional[Path]:
        """Path of the stored archive, when it can be read in place."""

    @abstractmethod
    def download(self, state: PackageState, destination: Path) -> bool:
        """Copy the stored archive to ``destination``."""

    @abstractmethod
    def submit(self, state: PackageState, source: "PackageRepository") -> bool:
        """Pull the artifact ``source`` holds for ``state`` into this tier."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.tier.value})"


@contextmanager
def fetch_artifact(source: PackageRepository, state: PackageState, scratch_dir: Path) -> Iterator[Path]:
    """Yield a readable path to the archive held by ``source``.

    Linked archives are used in place; otherwise the archive is downloaded to
    a temporary file in ``scratch_dir`` that is removed afterwards.
    """
    linked = source.link(state)
    if linked is not None:
        yield linked
        return
    scratch_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(suffix=".download", dir=scratch_dir)
    os.close(fd)
    try:
        if not source.download(state, Path(tmp_name)):
            raise IntegrityError(
                f"{source.tier.value} tier could not provide {state.name} {state.version(source.tier)}",
                package=state.name,
            )
        yield Path(tmp_name)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
