"""xpkg: dependency resolution and version negotiation for native build packages."""

__version__ = "0.3.0"
