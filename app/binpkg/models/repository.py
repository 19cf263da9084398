"""Repository index models.

This module defines the Pydantic models for a repository's
``index.toml`` and helpers for parsing dependency expressions.
"""

from dataclasses import dataclass
from typing import Annotated

from packaging.requirements import InvalidRequirement, Requirement
from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, ConfigDict, Field, field_validator

from binpkg.models.package import ArtifactRef, PackageEntry


class RepositoryPackage(BaseModel):
    """A binary package offered by a repository.

    Attributes:
        version: Package version.
        filename: Artifact file name relative to the repository directory.
        sha256: Hex digest of the artifact.
        size_download: Artifact size in bytes.
        size_installed: Installed size in bytes.
        essential: True if the package must never be absent from the system.
        depends: Dependency expressions such as ``"libfoo>=2.0"``.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[str, Field(min_length=1, description="Package version")]
    filename: Annotated[str, Field(min_length=1, description="Artifact file name")]
    sha256: Annotated[str, Field(pattern=r"^[0-9a-fA-F]{64}$", description="SHA-256 digest")]
    size_download: Annotated[int, Field(ge=0)] = 0
    size_installed: Annotated[int, Field(ge=0)] = 0
    essential: bool = False
    depends: Annotated[list[str], Field(default_factory=list)]

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Reject versions that cannot be ordered."""
        try:
            Version(v)
        except InvalidVersion as e:
            msg = f"invalid version '{v}'"
            raise ValueError(msg) from e
        return v

    @field_validator("depends")
    @classmethod
    def validate_depends(cls, v: list[str]) -> list[str]:
        """Reject dependency expressions that cannot be parsed."""
        for expr in v:
            parse_dependency(expr)
        return v

    @property
    def parsed_version(self) -> Version:
        """Return the version as a comparable object."""
        return Version(self.version)

    def to_entry(
        self,
        name: str,
        repository: str,
        *,
        is_dependency: bool = False,
        installed_version: str | None = None,
    ) -> PackageEntry:
        """Convert this offer into a transaction entry."""
        return PackageEntry(
            name=name,
            version=self.version,
            artifact=ArtifactRef(repository=repository, filename=self.filename),
            sha256=self.sha256.lower(),
            size_download=self.size_download,
            size_installed=self.size_installed,
            essential=self.essential,
            is_dependency=is_dependency,
            installed_version=installed_version,
            depends=tuple(self.depends),
        )


class RepositoryIndex(BaseModel):
    """Contents of a repository ``index.toml``.

    Attributes:
        packages: Offered packages keyed by name.
    """

    model_config = ConfigDict(extra="forbid")

    packages: Annotated[
        dict[str, RepositoryPackage],
        Field(default_factory=dict, description="Packages offered by the repository"),
    ]


@dataclass(frozen=True, slots=True)
class Dependency:
    """A parsed dependency expression.

    Attributes:
        name: Required package name.
        requirement: Parsed requirement used for version matching.
    """

    name: str
    requirement: Requirement

    @property
    def min_version(self) -> str | None:
        """Minimum version pinned with ``>=``, if any."""
        for spec in self.requirement.specifier:
            if spec.operator == ">=":
                return spec.version
        return None

    def is_satisfied_by(self, version: str) -> bool:
        """Check if ``version`` satisfies this dependency."""
        try:
            return self.requirement.specifier.contains(Version(version), prereleases=True)
        except InvalidVersion:
            return False


def parse_dependency(expr: str) -> Dependency:
    """Parse a dependency expression such as ``"libfoo>=2.0"``.

    Args:
        expr: Dependency expression.

    Returns:
        Parsed Dependency.

    Raises:
        ValueError: If the expression is not valid.
    """
    try:
        requirement = Requirement(expr)
    except InvalidRequirement as e:
        msg = f"invalid dependency '{expr}': {e}"
        raise ValueError(msg) from e
    return Dependency(name=requirement.name, requirement=requirement)
