"""Transaction set models.

A transaction set is the ordered, dependency-sorted batch of packages
handed from a driver to the transaction executor. It is built once,
consumed by exactly one executor run and then discarded.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from binpkg.models.package import PackageEntry


class TransactionMode(Enum):
    """How a transaction set was assembled.

    Attributes:
        SINGLE_TARGET: One explicitly requested package plus its dependencies.
        FLEET_UPDATE: Every installed package considered for an upgrade.
    """

    SINGLE_TARGET = "single-target"
    FLEET_UPDATE = "fleet-update"


@dataclass(frozen=True, slots=True)
class MissingDependency:
    """A dependency the resolver could not satisfy from any repository.

    Attributes:
        name: Name of the required package.
        version: Minimum required version, if the dependency pins one.
    """

    name: str
    version: str | None = None

    def __str__(self) -> str:
        if self.version is None:
            return self.name
        return f"{self.name} >= {self.version}"


@dataclass(frozen=True, slots=True)
class TransactionSet:
    """Ordered collection of package entries to apply together.

    Attributes:
        entries: Entries in topological order (dependencies first).
        mode: Whether this is a single-target or fleet-update transaction.
        origin_name: Explicitly requested package in single-target mode.
        force: Skip the interactive confirmation.
        is_update: Entries are upgrades of installed packages.
        missing_deps: Dependencies that could not be resolved.
    """

    entries: tuple[PackageEntry, ...]
    mode: TransactionMode = TransactionMode.SINGLE_TARGET
    origin_name: str | None = None
    force: bool = False
    is_update: bool = False
    missing_deps: tuple[MissingDependency, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate that package names are unique within the set."""
        seen: set[str] = set()
        for entry in self.entries:
            if entry.name in seen:
                msg = f"Duplicate package in transaction: {entry.name}"
                raise ValueError(msg)
            seen.add(entry.name)

    def __iter__(self) -> Iterator[PackageEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        """Check if there is nothing to apply."""
        return not self.entries

    @property
    def has_missing_deps(self) -> bool:
        """Check if the resolver left dependencies unresolved."""
        return bool(self.missing_deps)

    @property
    def names(self) -> list[str]:
        """Package names in transaction order."""
        return [entry.name for entry in self.entries]

    def registers_as_dependency(self, entry: PackageEntry) -> bool:
        """Decide whether ``entry`` is registered as an automatic dependency.

        In single-target mode every entry other than the origin package is
        a dependency. Otherwise the entry's own flag is used.
        """
        if entry.is_dependency:
            return True
        if self.mode is TransactionMode.SINGLE_TARGET and self.origin_name is not None:
            return entry.name != self.origin_name
        return False
