"""Version table keyed by platform and branch."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple

from ..constants import Constants
from .version import ComparableVersion

logger = logging.getLogger(__name__)


def _tag(platform: Optional[str], branch: Optional[str]) -> str:
    if not platform or platform.lower() in ("all", Constants.WILDCARD):
        platform = Constants.WILDCARD
    else:
        platform = platform.lower()
    if not branch or branch.lower() in (Constants.DEFAULT_BRANCH, Constants.WILDCARD):
        branch = Constants.WILDCARD
    else:
        branch = branch.lower()
    return f"{platform}|{branch}"


class Versions:
    """Versions declared by a package, one per platform|branch pair.

    ``all``/``*`` platforms and ``default``/``*`` branches collapse to the
    wildcard. The first version added for a key is kept.
    """

    def __init__(self) -> None:
        self._versions: Dict[str, ComparableVersion] = {}

    def add(self, platform: Optional[str], version: ComparableVersion, branch: Optional[str] = None) -> None:
        tag = _tag(platform, branch)
        if tag not in self._versions:
            self._versions[tag] = version

    def contains(self, platform: Optional[str], branch: Optional[str] = None) -> bool:
        return _tag(platform, branch) in self._versions

    def get_for_platform(self, platform: Optional[str], branch: Optional[str] = None) -> Optional[ComparableVersion]:
        """Return the version for a platform, falling back to ``*|branch`` and then ``*|*``."""
        tag = _tag(platform, branch)
        if tag in self._versions:
            return self._versions[tag]
        if tag.startswith(f"{Constants.WILDCARD}|"):
            return None
        for fallback in (_tag(None, branch), _tag(None, None)):
            if fallback in self._versions:
                return self._versions[fallback]
        return None

    def clear(self) -> None:
        self._versions.clear()

    def items(self) -> Iterator[Tuple[str, ComparableVersion]]:
        return iter(self._versions.items())

    def log_info(self) -> None:
        for tag, version in self._versions.items():
            logger.info("Versions[%s]=%s", tag, version)

    def __len__(self) -> int:
        return len(self._versions)
