"""Exception hierarchy for binpkg.

Every failure that aborts an operation derives from :class:`BinpkgError`
so the CLI layer can turn it into a failure exit status in one place.
"""

from enum import Enum


class BinpkgError(Exception):
    """Base exception for all binpkg errors."""


class ConfigError(BinpkgError):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class RegistryError(BinpkgError):
    """Raised when the installed-package registry cannot be read or written."""


class RepositoryError(BinpkgError):
    """Raised when a repository index cannot be loaded."""


class ResolveError(BinpkgError):
    """Raised when a transaction set cannot be built."""


class PackageNotFoundError(ResolveError):
    """Raised when a package is not available in any repository."""


class StateError(BinpkgError):
    """Raised when a package lifecycle state cannot be read or written."""


class IntegrityError(BinpkgError):
    """Raised when an artifact cannot be verified."""


class HashMismatchError(IntegrityError):
    """Raised when an artifact digest does not match the expected value."""


class PreviewError(BinpkgError):
    """Raised when the transaction preview cannot be rendered."""


class OperatorError(BinpkgError):
    """Raised when unpacking, removing, registering or configuring fails."""


class TransactionStep(Enum):
    """Mutation step of the executor that can fail."""

    REMOVE = "remove"
    UNPACK = "unpack"
    REGISTER = "register"
    STATE = "state"
    CONFIGURE = "configure"


class TransactionError(BinpkgError):
    """Raised when a transaction aborts while mutating the system.

    Attributes:
        step: Executor step that failed.
        name: Package being processed.
        version: Version being processed.
    """

    def __init__(self, step: TransactionStep, name: str, version: str, message: str) -> None:
        super().__init__(message)
        self.step = step
        self.name = name
        self.version = version

    @property
    def pkgver(self) -> str:
        """Return the ``name-version`` of the failing package."""
        return f"{self.name}-{self.version}"
