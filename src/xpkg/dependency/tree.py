"""Dependency tree of a root package for one platform."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple, Union

from ..common.logging_utils import Timer, extra_context, is_debug_enabled
from ..constants import Constants
from ..errors import ConflictError, CycleError, FormatError, NotFoundError, XpkgError
from ..package.archive import render_dependencies_info
from ..package.models import PackageInstance
from ..versioning.version import ComparableVersion
from .instance import DependencyInstance
from .resource import DependencyResource

if TYPE_CHECKING:
    from .resolver import PackageResolver

logger = logging.getLogger(__name__)

NodeKey = Tuple[str, str]


class DependencyTreeNode:
    """A resolved dependency and the nodes it depends on."""

    def __init__(self, dependency: DependencyInstance, package: PackageInstance, depth: int):
        self.dependency = dependency
        self.package = package
        self.depth = depth
        self.children: List["DependencyTreeNode"] = []

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def version(self) -> Optional[ComparableVersion]:
        return self.package.version

    def lines(self, indent: str) -> List[str]:
        if indent == "+":
            indent = "|----+"
        else:
            indent = "     " + indent
        version = self.version if self.version is not None else "?"
        result = [f"{indent} {self.name}, version={version}, type={self.dependency.type}"]
        for child in self.children:
            result.extend(child.lines(indent))
        return result


class DependencyTree:
    """Resolves the dependencies of ``root`` for ``platform``.

    Resolution is depth-first and fails fast: a missing package, a cycle or
    a version conflict stops the build, leaves the tree empty and is kept on
    ``last_error``.
    """

    def __init__(
        self,
        root: PackageInstance,
        platform: str,
        dependencies: List[DependencyResource],
        resolver: "PackageResolver",
    ):
        self.root = root
        self.platform = platform
        self.dependencies = list(dependencies)
        self.resolver = resolver
        self.last_error: Optional[XpkgError] = None
        self._built: Optional[bool] = None
        self._root_nodes: List[DependencyTreeNode] = []
        self._nodes: Dict[NodeKey, DependencyTreeNode] = {}
        self._post_order: List[DependencyTreeNode] = []

    @property
    def is_built(self) -> bool:
        return bool(self._built)

    def invalidate(self) -> None:
        self._built = None
        self.last_error = None

    def build(self) -> bool:
        """Resolve every applicable edge recursively; the outcome is cached."""
        if self._built is not None:
            return self._built
        self._root_nodes, self._nodes, self._post_order = [], {}, []
        root_key = (self.root.name.lower(), self.platform.lower())
        with Timer() as timer:
            try:
                self._root_nodes = self._build_level(self.dependencies, {root_key}, [self.root.name], 1)
            except (NotFoundError, ConflictError, FormatError) as exc:
                self.last_error = exc
                self._root_nodes, self._nodes, self._post_order = [], {}, []
                logger.error(
                    "Dependency tree of %s for %s failed: %s",
                    self.root.name,
                    self.platform,
                    exc,
                    extra=extra_context(
                        event="tree_build", component="dependency_tree", package=exc.package or self.root.name,
                        outcome=type(exc).__name__, duration_ms=timer.duration_ms(),
                    ),
                )
                self._built = False
                return False
        logger.info(
            "Dependency tree of %s for %s resolved %d packages",
            self.root.name,
            self.platform,
            len(self._post_order),
            extra=extra_context(
                event="tree_build", component="dependency_tree", package=self.root.name,
                outcome="success", duration_ms=timer.duration_ms(),
            ),
        )
        self._built = True
        return True

    def _build_level(
        self,
        resources: List[DependencyResource],
        resolving: Set[NodeKey],
        path: List[str],
        depth: int,
    ) -> List[DependencyTreeNode]:
        nodes: List[DependencyTreeNode] = []
        for resource in resources:
            if not resource.is_for_platform(self.platform):
                if is_debug_enabled(logger):
                    logger.debug("Skipping %s, not used on %s", resource.name, self.platform)
                continue
            dependency = DependencyInstance(self.platform, resource)
            key = dependency.key
            if key in resolving:
                raise CycleError(dependency.name, path)

            existing = self._nodes.get(key)
            if existing is not None:
                requested = dependency.version_range
                if existing.version is None or not requested.is_in_range(existing.version):
                    raise ConflictError(
                        f"{dependency.name} resolved to {existing.version} but {path[-1]} requires {requested}",
                        package=dependency.name,
                        selected=str(existing.version),
                        requested=str(requested),
                    )
                nodes.append(existing)
                continue

            package = self.resolver.resolve(dependency)
            node = DependencyTreeNode(dependency, package, depth)
            self._nodes[key] = node
            resolving.add(key)
            path.append(dependency.name)
            try:
                node.children = self._build_level(package.dependencies, resolving, path, depth + 1)
            finally:
                resolving.discard(key)
                path.pop()
            self._post_order.append(node)
            nodes.append(node)
        return nodes

    def get_all_dependency_packages(self) -> List[PackageInstance]:
        """Resolved packages, dependencies before their dependents."""
        if not self.build():
            return []
        return [node.package for node in self._post_order]

    def contains_dependency_for_platform(self, name: str, platform: str) -> bool:
        if platform.lower() != self.platform.lower() or not self.build():
            return False
        return (name.lower(), platform.lower()) in self._nodes

    def _root_version(self) -> Optional[ComparableVersion]:
        version = self.root.versions.get_for_platform(self.platform, self.root.branch)
        return version if version is not None else self.root.version

    def print(self) -> List[str]:
        """Log the tree and return its lines."""
        self.build()
        version = self._root_version()
        lines = [f"+ {self.root.name}, version={version if version is not None else '?'}, type={self.root.pom.type}"]
        for node in self._root_nodes:
            lines.extend(node.lines("+"))
        for line in lines:
            logger.info(line)
        return lines

    def save_info(self, path: Union[str, Path]) -> bool:
        """Write the ``dependencies.info`` manifest; a directory gets the default filename."""
        if not self.build():
            return False
        path = Path(path)
        if path.is_dir():
            path = path / Constants.DEPENDENCIES_INFO_FILE
        root_version = self._root_version() or ComparableVersion(Constants.DEFAULT_VERSION)
        entries = [
            (node.package.state, node.version or ComparableVersion(Constants.DEFAULT_VERSION))
            for node in self._post_order
        ]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_dependencies_info(self.root.state, root_version, entries), encoding="utf-8")
        return True
