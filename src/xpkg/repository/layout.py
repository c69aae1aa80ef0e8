"""Path construction for repository tiers.

A layout is a pair of templates rendered with ``str.format``. Available
fields: ``group``, ``group_path`` (group with dots as directories),
``name``, ``branch``, ``platform``, ``version_dir`` (``X/Y/Z``) and
``stem`` (the artifact filename without extension).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..constants import Constants
from ..package.filename import PackageFilename
from ..package.models import Package
from ..versioning.version import ComparableVersion


@dataclass(frozen=True)
class Layout:
    """Where a tier keeps a package, relative to the tier's directory."""
    name: str
    root_template: str
    version_template: str

    def _fields(self, package: Package, version: Optional[ComparableVersion]) -> dict:
        version = version if version is not None else ComparableVersion(Constants.DEFAULT_VERSION)
        return {
            "group": package.group,
            "group_path": "/".join(p for p in package.group.split(".") if p),
            "name": package.name,
            "branch": package.branch,
            "platform": package.platform,
            "version_dir": "/".join(version.to_strings(3)),
            "stem": self.filename(package, version).stem,
        }

    def filename(self, package: Package, version: Optional[ComparableVersion]) -> PackageFilename:
        return PackageFilename(
            name=package.name,
            version=version if version is not None else ComparableVersion(Constants.DEFAULT_VERSION),
            branch=package.branch,
            platform=package.platform,
        )

    def root_dir(self, repo_dir: Union[str, Path], package: Package) -> Path:
        """Directory holding every version of the package."""
        return Path(repo_dir) / self.root_template.format(**self._fields(package, None))

    def version_dir(self, repo_dir: Union[str, Path], package: Package, version: ComparableVersion) -> Path:
        """Directory holding one version of the package."""
        return Path(repo_dir) / self.version_template.format(**self._fields(package, version))


DEFAULT = Layout("default", "{group_path}/{name}", "{group_path}/{name}/version/{version_dir}")
LOCAL = Layout("local", "target/{name}/build/{platform}", "target/{name}/build/{platform}")
SHARE = Layout("share", "{group}/{name}", "{group}/{name}/{stem}")
TARGET = Layout("target", "{name}", "{name}/{platform}")
