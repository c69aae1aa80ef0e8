"""A dependency edge seen from one platform."""

from __future__ import annotations

from ..versioning.range import VersionRange
from .resource import DependencyResource


class DependencyInstance:
    """``DependencyResource`` bound to the platform being resolved."""

    def __init__(self, platform: str, resource: DependencyResource):
        self.platform = platform
        self.resource = resource

    @property
    def name(self) -> str:
        return self.resource.name

    @property
    def group(self) -> str:
        return self.resource.group

    @property
    def type(self) -> str:
        return self.resource.type

    @property
    def branch(self) -> str:
        return self.resource.get_branch(self.platform)

    @property
    def version_range(self) -> VersionRange:
        return self.resource.get_version_range(self.platform)

    @property
    def key(self):
        return (self.name.lower(), self.platform.lower())

    def __repr__(self) -> str:
        return f"DependencyInstance({self.name!r}, platform={self.platform!r}, range={self.version_range})"
