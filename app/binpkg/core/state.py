"""Package lifecycle state tracking.

This module provides the PackageStateTracker class that reads and advances
the per-package lifecycle tag stored in the installed-package registry.
The executor relies on it to skip work a previous run already committed.
"""

import logging

from binpkg.core.errors import RegistryError, StateError
from binpkg.core.registry import RegistryManager
from binpkg.models.package import PackageState

logger = logging.getLogger(__name__)


class PackageStateTracker:
    """Reads and writes package lifecycle states.

    A read failure is always an error: guessing NOT_APPLIED for a package
    that is in fact unpacked would unpack it a second time over a partially
    configured installation.
    """

    def __init__(self, registry: RegistryManager) -> None:
        """Initialize PackageStateTracker.

        Args:
            registry: Registry holding the persisted states.
        """
        self._registry = registry

    def get_state(self, name: str, version: str | None = None) -> PackageState:
        """Return the lifecycle state of a package.

        Args:
            name: Package name.
            version: If given, only a record of this exact version counts;
                a record of any other version reads as NOT_APPLIED.

        Returns:
            The persisted state, or NOT_APPLIED if nothing is registered.

        Raises:
            StateError: If the registry cannot be read.
        """
        try:
            record = self._registry.get(name)
        except RegistryError as e:
            raise StateError(f"Cannot read state of {name}: {e}") from e

        if record is None:
            return PackageState.NOT_APPLIED
        if version is not None and record.version != version:
            return PackageState.NOT_APPLIED
        return record.state

    def set_state(self, name: str, new_state: PackageState) -> None:
        """Advance the lifecycle state of a registered package.

        Setting the current state again is allowed. Moving backwards is not.

        Args:
            name: Package name.
            new_state: State to record.

        Raises:
            StateError: If the package is not registered, the state would
                regress, or the registry cannot be written.
        """
        try:
            record = self._registry.get(name)
            if record is None:
                raise StateError(f"Cannot set state of {name}: package is not registered")
            if new_state.precedes(record.state):
                raise StateError(
                    f"Cannot move {name} from {record.state.value} to {new_state.value}"
                )
            self._registry.set_state(name, new_state)
        except RegistryError as e:
            raise StateError(f"Cannot set state of {name}: {e}") from e

        logger.debug("State of %s is now %s", name, new_state.value)
