"""Dependency edges as declared in a package POM."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Mapping, Optional, Set
from xml.etree import ElementTree

from ..constants import Constants
from ..versioning.range import VersionRange

logger = logging.getLogger(__name__)

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_vars(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``${name}`` occurrences; unknown variables are left as they are."""
    return _VAR_PATTERN.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


def _platform_key(platform: Optional[str]) -> str:
    return (platform or Constants.WILDCARD).strip().lower()


class DependencyResource:
    """A declared dependency: which package, which branch and range per platform, on which platforms."""

    def __init__(
        self,
        name: str,
        group: str = Constants.DEFAULT_GROUP,
        dep_type: str = Constants.DEFAULT_DEPENDENCY_TYPE,
        platforms: Optional[Iterable[str]] = None,
    ):
        self.name = name
        self.group = group
        self.type = dep_type
        self._platforms: Set[str] = {p.strip().lower() for p in (platforms or []) if p.strip()}
        self._branches: Dict[str, str] = {}
        self._ranges: Dict[str, VersionRange] = {}

    @classmethod
    def from_element(cls, node: ElementTree.Element) -> "DependencyResource":
        """Read a ``<Dependency Package="..." Platforms="...">`` element."""
        platforms = (node.get("Platforms") or "").replace(",", ";").split(";")
        resource = cls(node.get("Package", "Unknown"), platforms=platforms)
        for child in node:
            if not isinstance(child.tag, str):
                continue
            text = (child.text or "").strip()
            if child.tag == "Group" and text:
                resource.group = text
            elif child.tag == "Type" and text:
                resource.type = text
            elif child.tag == "Version":
                resource.set_version_range(
                    VersionRange.parse(text or Constants.DEFAULT_VERSION_RANGE),
                    platform=child.get("Platform", Constants.WILDCARD),
                    branch=child.get("Branch", Constants.DEFAULT_BRANCH),
                )
        return resource

    @property
    def platforms(self) -> Set[str]:
        return set(self._platforms)

    def set_version_range(
        self,
        version_range: VersionRange,
        platform: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> None:
        platform = _platform_key(platform)
        branch = (branch or Constants.DEFAULT_BRANCH).lower()
        if branch == Constants.WILDCARD:
            branch = Constants.DEFAULT_BRANCH
        self._branches[platform] = branch
        self._ranges[f"{platform}|{branch}"] = version_range

    def get_branch(self, platform: str, default: str = Constants.DEFAULT_BRANCH) -> str:
        return self._branches.get(_platform_key(platform), default)

    def get_version_range(self, platform: str) -> VersionRange:
        """Range for a platform, falling back to the ``*`` platform and then to ``[1.0,)``."""
        key = _platform_key(platform)
        found = self._ranges.get(f"{key}|{self.get_branch(key)}")
        if found is not None:
            return found
        if key != Constants.WILDCARD:
            found = self._ranges.get(f"{Constants.WILDCARD}|{self.get_branch(Constants.WILDCARD)}")
            if found is not None:
                return found
        logger.debug("No version range for %s on %s, using %s", self.name, platform, Constants.DEFAULT_VERSION_RANGE)
        return VersionRange.default()

    def is_for_platform(self, platform: str) -> bool:
        """An empty platform filter, or one containing ``*``, applies everywhere."""
        if not self._platforms or Constants.WILDCARD in self._platforms:
            return True
        return _platform_key(platform) in self._platforms

    def expand_vars(self, variables: Mapping[str, str]) -> None:
        self.name = expand_vars(self.name, variables)
        self.group = expand_vars(self.group, variables)
        self.type = expand_vars(self.type, variables)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyResource):
            return NotImplemented
        return (
            self.name.lower() == other.name.lower()
            and self.group.lower() == other.group.lower()
            and self.type.lower() == other.type.lower()
            and self._branches == other._branches
            and self._ranges == other._ranges
            and self._platforms == other._platforms
        )

    def __hash__(self) -> int:
        return hash((self.name.lower(), self.group.lower(), self.type.lower()))

    def __repr__(self) -> str:
        return f"DependencyResource({self.name!r}, group={self.group!r})"
