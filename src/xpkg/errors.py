"""Exceptions raised by the resolution engine."""

from typing import List, Optional


class XpkgError(Exception):
    """Base exception for all package resolution errors."""

    def __init__(self, message: str = "", package: Optional[str] = None):
        self.message = message
        self.package = package
        super().__init__(message)


class FormatError(XpkgError, ValueError):
    """Raised for a malformed version string, range expression or package filename."""


class NotFoundError(XpkgError):
    """Raised when no tier holds an eligible version of a required package."""


class ConflictError(XpkgError):
    """Raised when one package name resolves to incompatible versions on two paths."""

    def __init__(
        self,
        message: str,
        package: Optional[str] = None,
        selected: Optional[str] = None,
        requested: Optional[str] = None,
    ):
        self.selected = selected
        self.requested = requested
        super().__init__(message, package=package)


class CycleError(ConflictError):
    """Raised when a package depends on itself through its own dependencies."""

    def __init__(self, package: str, path: List[str]):
        self.path = list(path)
        chain = " -> ".join(self.path + [package])
        super().__init__(f"Dependency cycle detected: {chain}", package=package)


class IntegrityError(XpkgError):
    """Raised when an artifact changes or is corrupt while propagating between tiers."""


class TransportError(XpkgError):
    """Raised when a remote tier cannot be reached."""
