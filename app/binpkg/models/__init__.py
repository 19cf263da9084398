"""Data models for binpkg.

This module exports the core data structures used throughout the application.
"""

from binpkg.models.package import ArtifactRef, PackageEntry, PackageState
from binpkg.models.registry import InstalledPackage, Registry
from binpkg.models.repository import (
    Dependency,
    RepositoryIndex,
    RepositoryPackage,
    parse_dependency,
)
from binpkg.models.transaction import MissingDependency, TransactionMode, TransactionSet

__all__ = [
    "ArtifactRef",
    "Dependency",
    "InstalledPackage",
    "MissingDependency",
    "PackageEntry",
    "PackageState",
    "Registry",
    "RepositoryIndex",
    "RepositoryPackage",
    "TransactionMode",
    "TransactionSet",
    "parse_dependency",
]
