"""Transaction set resolution.

Builds dependency-complete, topologically ordered transaction sets from
the repository pool and the installed-package registry.
"""

import logging
from collections import deque
from collections.abc import Iterable
from graphlib import CycleError, TopologicalSorter
from pathlib import Path

from packaging.version import InvalidVersion, Version

from binpkg.core.errors import PackageNotFoundError, RegistryError, RepositoryError, ResolveError
from binpkg.core.registry import RegistryManager
from binpkg.core.repository import RepositoryPool
from binpkg.models.package import PackageEntry, PackageState
from binpkg.models.registry import InstalledPackage
from binpkg.models.repository import Dependency, RepositoryPackage, parse_dependency
from binpkg.models.transaction import MissingDependency, TransactionMode, TransactionSet

logger = logging.getLogger(__name__)


class Resolver:
    """Resolves package requests into transaction sets.

    Dependencies already installed and configured at a satisfying version
    are left alone. Those an interrupted run left unconfigured are added
    back from their registry record so the transaction finishes them.
    Dependencies no repository can satisfy are reported on the resulting
    set as missing instead of raising, so the caller can list them all.
    """

    def __init__(self, pool: RepositoryPool, registry: RegistryManager) -> None:
        self._pool = pool
        self._registry = registry

    def resolve_install(self, name: str) -> TransactionSet:
        """Resolve a package and its dependencies for installation.

        Raises:
            PackageNotFoundError: If no repository offers the package.
            ResolveError: If the repositories or registry cannot be read.
        """
        found = self._find(name)
        if found is None:
            raise PackageNotFoundError(f"Unable to locate '{name}' in repository pool.")

        repository, offer = found
        root = offer.to_entry(name, str(repository))
        return self._build(
            [root],
            mode=TransactionMode.SINGLE_TARGET,
            origin_name=name,
            is_update=False,
        )

    def resolve_upgrade(self, name: str, installed: InstalledPackage) -> TransactionSet | None:
        """Resolve a newer version of an installed package.

        Returns:
            The transaction set, or None if no newer version exists.
        """
        entry = self.find_update(installed)
        if entry is None:
            return None
        return self._build(
            [entry],
            mode=TransactionMode.SINGLE_TARGET,
            origin_name=name,
            is_update=True,
        )

    def find_update(self, installed: InstalledPackage) -> PackageEntry | None:
        """Find a newer version of an installed package.

        Returns:
            Entry for the newer version, or None if the installed version
            is the newest available.

        Raises:
            ResolveError: If versions cannot be compared or repositories read.
        """
        found = self._find(installed.name)
        if found is None:
            return None

        repository, offer = found
        try:
            newer = offer.parsed_version > Version(installed.version)
        except InvalidVersion as e:
            msg = f"Cannot compare versions of {installed.name}: {e}"
            raise ResolveError(msg) from e

        if not newer:
            return None

        logger.debug("%s: %s -> %s", installed.name, installed.version, offer.version)
        return offer.to_entry(
            installed.name,
            str(repository),
            is_dependency=installed.automatic,
            installed_version=installed.version,
        )

    def sort(
        self,
        entries: Iterable[PackageEntry],
        *,
        mode: TransactionMode = TransactionMode.FLEET_UPDATE,
        origin_name: str | None = None,
        is_update: bool = True,
    ) -> TransactionSet:
        """Complete and topologically order an arbitrary set of entries.

        Raises:
            ResolveError: On dependency cycles or unreadable repositories.
        """
        return self._build(list(entries), mode=mode, origin_name=origin_name, is_update=is_update)

    def _find(
        self,
        name: str,
        dependency: Dependency | None = None,
    ) -> tuple[Path, RepositoryPackage] | None:
        try:
            return self._pool.find(name, dependency)
        except RepositoryError as e:
            raise ResolveError(str(e)) from e

    def _installed(self, name: str) -> InstalledPackage | None:
        try:
            return self._registry.get(name)
        except RegistryError as e:
            raise ResolveError(str(e)) from e

    def _build(
        self,
        roots: list[PackageEntry],
        *,
        mode: TransactionMode,
        origin_name: str | None,
        is_update: bool,
    ) -> TransactionSet:
        collected: dict[str, PackageEntry] = {entry.name: entry for entry in roots}
        missing: dict[str, MissingDependency] = {}
        queue = deque(roots)

        while queue:
            entry = queue.popleft()
            for expr in entry.depends:
                dep = _parse(expr, entry)
                if dep.name in collected or dep.name in missing:
                    continue

                installed = self._installed(dep.name)
                if installed is not None and dep.is_satisfied_by(installed.version):
                    if installed.state is not PackageState.CONFIGURED:
                        # Left behind by an interrupted run, finish it here
                        logger.debug("Pending dependency %s-%s", dep.name, installed.version)
                        pending = installed.to_entry()
                        collected[dep.name] = pending
                        queue.append(pending)
                    continue

                found = self._find(dep.name, dep)
                if found is None:
                    missing[dep.name] = MissingDependency(name=dep.name, version=dep.min_version)
                    continue

                repository, offer = found
                dep_entry = offer.to_entry(
                    dep.name,
                    str(repository),
                    is_dependency=installed.automatic if installed is not None else True,
                    installed_version=installed.version if installed is not None else None,
                )
                collected[dep.name] = dep_entry
                queue.append(dep_entry)

        order = _topological_order(collected)
        return TransactionSet(
            entries=tuple(collected[name] for name in order),
            mode=mode,
            origin_name=origin_name,
            is_update=is_update,
            missing_deps=tuple(missing.values()),
        )


def _parse(expr: str, entry: PackageEntry) -> Dependency:
    try:
        return parse_dependency(expr)
    except ValueError as e:
        raise ResolveError(f"{entry.pkgver}: {e}") from e


def _topological_order(entries: dict[str, PackageEntry]) -> list[str]:
    """Order package names so that dependencies come first."""
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for name, entry in entries.items():
        deps = [_parse(expr, entry).name for expr in entry.depends]
        sorter.add(name, *(dep for dep in deps if dep in entries))

    try:
        return list(sorter.static_order())
    except CycleError as e:
        cycle = " -> ".join(e.args[1])
        raise ResolveError(f"Dependency cycle detected: {cycle}") from e
