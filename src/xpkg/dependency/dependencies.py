"""Dependency trees of a root package, one per platform."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..common.vcs import read_vcs_info, render_vcs_info
from ..constants import Constants
from ..package.models import PackageInstance, PackageState, Tier
from ..package.pom import load_pom
from .resolver import PackageResolver
from .tree import DependencyTree

logger = logging.getLogger(__name__)


def load_root_package(
    root_dir: Union[str, Path],
    platform: str = Constants.DEFAULT_PLATFORM,
    branch: Optional[str] = None,
    vcs_tool: Optional[str] = None,
) -> PackageInstance:
    """Load the root package from its working copy.

    Branch and changeset come from the working copy's VCS; an explicit
    ``branch`` wins over the checked out one.
    """
    root_dir = Path(root_dir)
    pom = load_pom(root_dir)
    vcs = read_vcs_info(root_dir, vcs_tool)
    state = PackageState(
        name=pom.name,
        group=pom.group,
        branch=branch or vcs.branch,
        platform=platform,
        changeset=vcs.revision,
    )
    state.set_tier(Tier.ROOT, url=str(root_dir), version=pom.versions.get_for_platform(platform, state.branch))
    logger.info("Root package %s on branch %s (%s %s)", pom.name, state.branch, vcs.tool, vcs.revision)
    return PackageInstance(state, pom, is_root=True, vcs=vcs)


class PackageDependencies:
    """Builds and caches the dependency tree of a root package per platform."""

    def __init__(self, root: PackageInstance, resolver: PackageResolver):
        self.root = root
        self.resolver = resolver
        self._trees: Dict[str, DependencyTree] = {}

    def get_dependency_tree(self, platform: str) -> DependencyTree:
        key = platform.lower()
        tree = self._trees.get(key)
        if tree is None:
            tree = DependencyTree(self.root, platform, self.root.dependencies, self.resolver)
            self._trees[key] = tree
        return tree

    def build_for_platform(self, platform: str) -> bool:
        return self.get_dependency_tree(platform).build()

    def build_for_platforms(self, platforms: Iterable[str]) -> bool:
        result = True
        for platform in platforms:
            if not self.build_for_platform(platform):
                result = False
        return result

    def build_for_all_platforms(self) -> bool:
        return self.build_for_platforms(self.root.platforms or [self.root.platform])

    def is_dependency_for_platform(self, name: str, platform: str) -> bool:
        """True for the root itself or any package resolved for ``platform``."""
        if name.lower() == self.root.name.lower():
            return True
        return self.get_dependency_tree(platform).contains_dependency_for_platform(name, platform)

    def get_all_dependency_packages(self, platform: str) -> List[PackageInstance]:
        return self.get_dependency_tree(platform).get_all_dependency_packages()

    def print_for_platform(self, platform: str) -> List[str]:
        return self.get_dependency_tree(platform).print()

    def save_info(self, platform: str, path: Union[str, Path]) -> bool:
        """Write ``dependencies.info`` and, for a root read from a working copy, ``vcs.info`` beside it."""
        path = Path(path)
        if not self.get_dependency_tree(platform).save_info(path):
            return False
        if self.root.vcs is not None:
            directory = path if path.is_dir() else path.parent
            (directory / Constants.VCS_INFO_FILE).write_text(render_vcs_info(self.root.vcs), encoding="utf-8")
        return True

    def last_error(self, platform: str) -> Optional[Exception]:
        tree = self._trees.get(platform.lower())
        return tree.last_error if tree is not None else None
