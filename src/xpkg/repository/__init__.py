"""Repository tiers and the negotiation between them."""

from .base import PackageRepository, find_best_version
from .context import ResolutionContext
from .database import HttpPackageDatabase, PackageDatabase, PackageRecord
from .extracted import ExtractedRepository
from .filesystem import FileSystemRepository
from .layout import Layout
from .negotiator import Negotiator
from .remote import RemoteDbRepository, remote_filesystem

__all__ = [
    "ExtractedRepository",
    "FileSystemRepository",
    "HttpPackageDatabase",
    "Layout",
    "Negotiator",
    "PackageDatabase",
    "PackageRecord",
    "PackageRepository",
    "RemoteDbRepository",
    "ResolutionContext",
    "find_best_version",
    "remote_filesystem",
]
