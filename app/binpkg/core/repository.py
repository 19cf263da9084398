"""Repository pool.

This module loads the ``index.toml`` of every configured repository and
answers "which is the best available version of this package" queries.
"""

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from binpkg.core.errors import RepositoryError
from binpkg.models.repository import Dependency, RepositoryIndex, RepositoryPackage

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.toml"


def load_index(repository: Path) -> RepositoryIndex:
    """Load and validate a repository index.

    Args:
        repository: Repository directory.

    Returns:
        Validated RepositoryIndex.

    Raises:
        RepositoryError: If the index is missing, unreadable or invalid.
    """
    index_path = repository / INDEX_FILENAME

    try:
        with open(index_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise RepositoryError(f"Repository index not found: {index_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise RepositoryError(f"Invalid TOML syntax in {index_path}: {e}") from e
    except OSError as e:
        raise RepositoryError(f"Failed to read {index_path}: {e}") from e

    try:
        return RepositoryIndex.model_validate(data)
    except ValidationError as e:
        raise RepositoryError(f"Invalid repository index {index_path}: {e}") from e


class RepositoryPool:
    """All configured repositories, searched in order.

    Indexes are loaded lazily on the first query and cached for the
    lifetime of the pool.

    Example:
        >>> pool = RepositoryPool([Path("/srv/repo")])
        >>> found = pool.find("foo")
        >>> if found is not None:
        ...     repository, offer = found
        ...     print(offer.version)
    """

    def __init__(self, repositories: list[Path]) -> None:
        """Initialize the pool.

        Args:
            repositories: Repository directories in priority order.
        """
        self._repositories = list(repositories)
        self._indexes: list[tuple[Path, RepositoryIndex]] | None = None

    @property
    def repositories(self) -> list[Path]:
        """Configured repository directories."""
        return list(self._repositories)

    def _load(self) -> list[tuple[Path, RepositoryIndex]]:
        if self._indexes is None:
            self._indexes = [(repo, load_index(repo)) for repo in self._repositories]
            logger.debug("Loaded %d repository index(es)", len(self._indexes))
        return self._indexes

    def find(
        self,
        name: str,
        dependency: Dependency | None = None,
    ) -> tuple[Path, RepositoryPackage] | None:
        """Find the best available version of a package.

        The highest version wins. On equal versions the repository listed
        first wins.

        Args:
            name: Package name.
            dependency: Optional constraint the version must satisfy.

        Returns:
            Tuple of (repository directory, offer), or None if no repository
            offers a matching version.

        Raises:
            RepositoryError: If a repository index cannot be loaded.
        """
        best: tuple[Path, RepositoryPackage] | None = None

        for repository, index in self._load():
            offer = index.packages.get(name)
            if offer is None:
                continue
            if dependency is not None and not dependency.is_satisfied_by(offer.version):
                continue
            if best is None or offer.parsed_version > best[1].parsed_version:
                best = (repository, offer)

        return best
