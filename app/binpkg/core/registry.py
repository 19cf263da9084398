"""Installed-package registry persistence.

This module provides the RegistryManager class that reads and writes the
JSON registry of installed packages, including each package's lifecycle
state used to resume interrupted transactions.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from binpkg.core.errors import RegistryError
from binpkg.core.paths import ensure_db_dir
from binpkg.models.package import PackageState
from binpkg.models.registry import InstalledPackage, Registry

logger = logging.getLogger(__name__)


class RegistryManager:
    """Manages the installed-package registry in a JSON file.

    Storage location: <rootdir>/var/db/binpkg/registry.json

    Every mutation rewrites the file atomically, so a crash never leaves a
    half-written registry behind. A missing file is an empty registry.

    Attributes:
        path: Location of the registry file.
    """

    def __init__(self, path: Path) -> None:
        """Initialize RegistryManager.

        Args:
            path: Location of the registry file.
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Path to the registry file."""
        return self._path

    def load(self) -> Registry:
        """Read the registry from disk.

        Returns:
            The registry; empty if the file doesn't exist yet.

        Raises:
            RegistryError: If the file cannot be read or is invalid.
        """
        if not self._path.exists():
            return Registry()

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise RegistryError(f"Failed to read registry {self._path}: {e}") from e

        try:
            return Registry.model_validate_json(raw)
        except ValidationError as e:
            raise RegistryError(f"Invalid registry content in {self._path}: {e}") from e

    def save(self, registry: Registry) -> None:
        """Write the registry to disk atomically.

        Args:
            registry: The registry to persist.

        Raises:
            RegistryError: If the file cannot be written.
        """
        tmp_path: Path | None = None
        try:
            ensure_db_dir(self._path.parent)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write(registry.model_dump_json(indent=2))
                f.write("\n")
            os.replace(str(tmp_path), str(self._path))
        except (OSError, RuntimeError) as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise RegistryError(f"Failed to write registry {self._path}: {e}") from e

    def get(self, name: str) -> InstalledPackage | None:
        """Find the record of an installed package.

        Args:
            name: Package name.

        Returns:
            The record, or None if the package is not installed.
        """
        return self.load().packages.get(name)

    def list_packages(self) -> list[InstalledPackage]:
        """Return all installed packages sorted by name."""
        registry = self.load()
        return [registry.packages[name] for name in sorted(registry.packages)]

    def add(self, record: InstalledPackage) -> None:
        """Add a record, replacing any existing record of the same name."""
        registry = self.load()
        registry.packages[record.name] = record
        self.save(registry)
        logger.debug("Registered %s-%s", record.name, record.version)

    def remove(self, name: str) -> bool:
        """Drop a package record.

        Returns:
            True if a record was removed, False if none existed.
        """
        registry = self.load()
        if registry.packages.pop(name, None) is None:
            return False
        self.save(registry)
        logger.debug("Unregistered %s", name)
        return True

    def set_state(self, name: str, state: PackageState) -> None:
        """Overwrite the lifecycle state of a package.

        Raises:
            RegistryError: If the package is not registered or the write fails.
        """
        registry = self.load()
        record = registry.packages.get(name)
        if record is None:
            raise RegistryError(f"Package '{name}' is not registered")
        registry.packages[name] = record.model_copy(update={"state": state})
        self.save(registry)
