"""Installed-package registry models.

This module defines the Pydantic models for the registry file that
records every installed package together with its lifecycle state.
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from binpkg.models.package import ArtifactRef, PackageEntry, PackageState


class InstalledPackage(BaseModel):
    """Registry record for one installed package.

    Attributes:
        name: Package name.
        version: Installed version.
        state: Lifecycle state of this version.
        automatic: True if installed as a dependency of another package.
        essential: True if the package must never be absent from the system.
        repository: Repository the artifact was installed from.
        filename: Artifact file name.
        sha256: Digest of the installed artifact.
        size_download: Artifact size in bytes.
        size_installed: Installed size in bytes.
        depends: Dependency expressions of this version.
        files: Paths owned by the package, relative to the root directory.
        installed_at: When this version was registered.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Package name")]
    version: Annotated[str, Field(min_length=1, description="Installed version")]
    state: Annotated[PackageState, Field(description="Lifecycle state")] = (
        PackageState.NOT_APPLIED
    )
    automatic: Annotated[bool, Field(description="Installed as a dependency")] = False
    essential: Annotated[bool, Field(description="Never removed before upgrade")] = False
    repository: Annotated[str, Field(description="Source repository")] = ""
    filename: Annotated[str, Field(description="Artifact file name")] = ""
    sha256: Annotated[str, Field(description="Artifact digest")] = ""
    size_download: Annotated[int, Field(ge=0)] = 0
    size_installed: Annotated[int, Field(ge=0)] = 0
    depends: Annotated[list[str], Field(default_factory=list)]
    files: Annotated[list[str], Field(default_factory=list)]
    installed_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(UTC))]

    @classmethod
    def from_entry(
        cls,
        entry: PackageEntry,
        *,
        automatic: bool,
        files: list[str],
    ) -> "InstalledPackage":
        """Build a fresh record for a newly unpacked entry."""
        return cls(
            name=entry.name,
            version=entry.version,
            state=PackageState.NOT_APPLIED,
            automatic=automatic,
            essential=entry.essential,
            repository=entry.artifact.repository,
            filename=entry.artifact.filename,
            sha256=entry.sha256,
            size_download=entry.size_download,
            size_installed=entry.size_installed,
            depends=list(entry.depends),
            files=files,
        )

    def to_entry(self) -> PackageEntry:
        """Rebuild a transaction entry for this installed version.

        Used to resume packages that were unpacked but never configured.
        """
        return PackageEntry(
            name=self.name,
            version=self.version,
            artifact=ArtifactRef(repository=self.repository, filename=self.filename),
            sha256=self.sha256,
            size_download=self.size_download,
            size_installed=self.size_installed,
            essential=self.essential,
            is_dependency=self.automatic,
            installed_version=self.version,
            depends=tuple(self.depends),
        )


class Registry(BaseModel):
    """Complete installed-package registry.

    Attributes:
        version: Registry schema version.
        packages: Installed packages keyed by name.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[str, Field(description="Registry schema version")] = "1.0"
    packages: Annotated[
        dict[str, InstalledPackage],
        Field(default_factory=dict, description="Installed packages by name"),
    ]
