"""Versions, version ranges and per-platform version tables."""

from .version import ComparableVersion
from .range import RangeKind, SplitResult, VersionRange
from .versions import Versions

__all__ = [
    "ComparableVersion",
    "RangeKind",
    "SplitResult",
    "VersionRange",
    "Versions",
]
