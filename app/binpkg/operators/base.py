"""Abstract base class for package operators.

This module defines the PackageOperator interface: the four primitive
mutations the transaction executor performs on the managed root.
"""

from abc import ABC, abstractmethod

from binpkg.models.package import PackageEntry


class PackageOperator(ABC):
    """Abstract base class for all package operators.

    Operators place package files on disk, take them off again, record
    packages in the registry and run their post-installation scripts.
    Every method raises OperatorError on failure and leaves the decision
    whether to continue to the caller.

    Example:
        >>> operator = LocalOperator(rootdir, registry, scripts_dir)
        >>> operator.unpack(entry, essential=False)
        >>> operator.register(entry, is_dependency=True)
        >>> operator.configure(entry.name, entry.version)
    """

    @abstractmethod
    def unpack(self, entry: PackageEntry, essential: bool) -> None:
        """Place the files of a package on disk.

        Args:
            entry: Package to unpack.
            essential: If True, every file must be replaced atomically so
                that no file of the package is ever missing.

        Raises:
            OperatorError: If the artifact cannot be unpacked.
        """

    @abstractmethod
    def remove(self, name: str, version: str, updating: bool) -> None:
        """Remove the files of an installed package.

        Args:
            name: Package name.
            version: Installed version being removed.
            updating: True if a newer version is installed right after.

        Raises:
            OperatorError: If the package cannot be removed.
        """

    @abstractmethod
    def register(self, entry: PackageEntry, is_dependency: bool) -> None:
        """Record a package in the installed-package registry.

        Args:
            entry: Package to record.
            is_dependency: True if the package was pulled in automatically.

        Raises:
            OperatorError: If the registry cannot be updated.
        """

    @abstractmethod
    def configure(self, name: str, version: str) -> None:
        """Run the post-installation setup of a package.

        Args:
            name: Package name.
            version: Installed version.

        Raises:
            OperatorError: If configuration fails.
        """
