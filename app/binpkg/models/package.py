"""Package models for transaction entries.

This module defines the core data structures describing a single
package's role in a transaction and its persisted lifecycle state.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PackageState(str, Enum):
    """Lifecycle state of a package in the installed-package registry.

    States only move forward: NOT_APPLIED -> UNPACKED -> CONFIGURED.

    Attributes:
        NOT_APPLIED: Files of this version are not on disk yet.
        UNPACKED: Files are on disk and the package is registered.
        CONFIGURED: Post-installation setup has completed.
    """

    NOT_APPLIED = "not-applied"
    UNPACKED = "unpacked"
    CONFIGURED = "configured"

    @property
    def rank(self) -> int:
        """Position of this state in the lifecycle."""
        return _STATE_ORDER.index(self)

    @property
    def is_applied(self) -> bool:
        """Check if the package files are already on disk."""
        return self.rank >= PackageState.UNPACKED.rank

    def precedes(self, other: "PackageState") -> bool:
        """Check if this state comes strictly before ``other``."""
        return self.rank < other.rank


_STATE_ORDER: tuple[PackageState, ...] = (
    PackageState.NOT_APPLIED,
    PackageState.UNPACKED,
    PackageState.CONFIGURED,
)


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """Locator for a downloadable package artifact.

    Attributes:
        repository: Repository directory holding the artifact.
        filename: Artifact file name inside the repository.
    """

    repository: str
    filename: str

    @property
    def path(self) -> Path:
        """Full path to the artifact file."""
        return Path(self.repository) / self.filename


@dataclass(frozen=True, slots=True)
class PackageEntry:
    """One package's role in a transaction.

    This is an immutable data structure produced by the resolver. The
    lifecycle state is not stored here; it lives in the registry and is
    read through the state tracker.

    Attributes:
        name: Package name, unique within a transaction.
        version: Version being installed.
        artifact: Where the binary package can be found.
        sha256: Expected hex digest of the artifact.
        size_download: Artifact size in bytes.
        size_installed: Installed size in bytes.
        essential: True if the system cannot tolerate this package being absent.
        is_dependency: True if pulled in transitively rather than requested.
        installed_version: Currently installed version when upgrading.
        depends: Dependency expressions such as ``"libfoo>=2.0"``.
    """

    name: str
    version: str
    artifact: ArtifactRef
    sha256: str = ""
    size_download: int = 0
    size_installed: int = 0
    essential: bool = False
    is_dependency: bool = False
    installed_version: str | None = None
    depends: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if not self.version:
            msg = f"Package version cannot be empty for {self.name}"
            raise ValueError(msg)
        if self.size_download < 0 or self.size_installed < 0:
            msg = f"Package sizes must be non-negative for {self.name}"
            raise ValueError(msg)

    @property
    def pkgver(self) -> str:
        """Return the ``name-version`` display token."""
        return f"{self.name}-{self.version}"

    @property
    def is_installed(self) -> bool:
        """Check if some version of this package is already installed."""
        return self.installed_version is not None
