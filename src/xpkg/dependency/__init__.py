"""Dependency edges, trees and their resolution.

tree.py, resolver.py and dependencies.py are imported directly; only the
edge types are re-exported here because pom.py depends on them.
"""

from .instance import DependencyInstance
from .resource import DependencyResource

__all__ = ["DependencyInstance", "DependencyResource"]
