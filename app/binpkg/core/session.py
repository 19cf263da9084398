"""Session wiring.

Builds the registry, resolver, operator and executor for one CLI
invocation from a loaded configuration.
"""

from collections.abc import Callable
from dataclasses import dataclass

from binpkg.core.config import BinpkgConfig
from binpkg.core.executor import TransactionExecutor
from binpkg.core.registry import RegistryManager
from binpkg.core.repository import RepositoryPool
from binpkg.core.resolver import Resolver
from binpkg.core.state import PackageStateTracker
from binpkg.operators.base import PackageOperator
from binpkg.operators.local import LocalOperator


@dataclass(slots=True)
class Session:
    """Collaborators shared by the drivers during one invocation.

    Attributes:
        config: Effective configuration.
        registry: Installed-package registry.
        tracker: Lifecycle state tracker on top of the registry.
        resolver: Builds transaction sets.
        executor: Applies transaction sets.
    """

    config: BinpkgConfig
    registry: RegistryManager
    tracker: PackageStateTracker
    resolver: Resolver
    executor: TransactionExecutor


def open_session(
    config: BinpkgConfig,
    *,
    operator: PackageOperator | None = None,
    confirm: Callable[[str], bool] | None = None,
) -> Session:
    """Create a session for the managed root described by ``config``.

    Args:
        config: Effective configuration.
        operator: Operator to use instead of the local tar operator.
        confirm: Confirmation callback to use instead of the interactive prompt.

    Returns:
        Fully wired Session.
    """
    registry = RegistryManager(config.registry_path)
    tracker = PackageStateTracker(registry)
    resolver = Resolver(RepositoryPool(config.repositories), registry)

    if operator is None:
        operator = LocalOperator(
            config.rootdir,
            registry,
            config.scripts_dir,
            configure_timeout=config.configure_timeout,
        )

    if confirm is None:
        executor = TransactionExecutor(operator, tracker, registry)
    else:
        executor = TransactionExecutor(operator, tracker, registry, confirm=confirm)

    return Session(
        config=config,
        registry=registry,
        tracker=tracker,
        resolver=resolver,
        executor=executor,
    )
