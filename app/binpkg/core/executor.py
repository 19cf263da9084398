"""Transaction execution.

Applies a resolved transaction set to the managed root in two sequential
passes over the set:

1. Apply: remove outdated versions where required, unpack, register and
   mark each package UNPACKED.
2. Configure: run every package's post-installation setup and mark it
   CONFIGURED.

Progress is persisted after every step, so a run that stops half-way is
picked up again by the next run without redoing completed work.
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

import typer

from binpkg.core.errors import BinpkgError, TransactionError, TransactionStep
from binpkg.core.integrity import check_transaction_hashes
from binpkg.core.registry import RegistryManager
from binpkg.core.report import show_transaction_preview
from binpkg.core.state import PackageStateTracker
from binpkg.models.package import PackageEntry, PackageState
from binpkg.models.transaction import TransactionMode, TransactionSet
from binpkg.operators.base import PackageOperator
from binpkg.utils.formatting import console

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = "Do you want to continue?"

T = TypeVar("T")


class PlacementStrategy(Enum):
    """How a new version replaces an installed one.

    Attributes:
        OVERWRITE_IN_PLACE: Unpack over the old files without removing them.
        REMOVE_THEN_INSTALL: Remove the old version, then unpack the new one.
    """

    OVERWRITE_IN_PLACE = "overwrite-in-place"
    REMOVE_THEN_INSTALL = "remove-then-install"


class TransactionOutcome(Enum):
    """Result of a transaction that did not fail."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


def choose_placement_strategy(entry: PackageEntry) -> PlacementStrategy:
    """Pick the placement strategy for an entry.

    Essential packages are never removed, not even for a moment, so they
    are always overwritten in place.
    """
    if entry.essential:
        return PlacementStrategy.OVERWRITE_IN_PLACE
    return PlacementStrategy.REMOVE_THEN_INSTALL


def upgrade_applies(transaction: TransactionSet, entry: PackageEntry) -> bool:
    """Check if applying an entry replaces an installed version.

    In fleet updates every installed entry is an upgrade. A single-target
    run only upgrades when the installed version differs.
    """
    if entry.installed_version is None:
        return False
    if transaction.mode is TransactionMode.FLEET_UPDATE:
        return True
    return entry.installed_version != entry.version


def _confirm(prompt: str) -> bool:
    return typer.confirm(prompt, default=False)


class TransactionExecutor:
    """Executes transaction sets against the managed root.

    Attributes:
        operator: Performs unpack, remove, register and configure.
        tracker: Reads and advances per-package lifecycle states.
        registry: Looks up installed versions before removal.

    Example:
        >>> executor = TransactionExecutor(operator, tracker, registry)
        >>> outcome = executor.execute(transaction)
        >>> outcome is TransactionOutcome.COMPLETED
        True
    """

    def __init__(
        self,
        operator: PackageOperator,
        tracker: PackageStateTracker,
        registry: RegistryManager,
        confirm: Callable[[str], bool] = _confirm,
    ) -> None:
        """Initialize TransactionExecutor.

        Args:
            operator: Package operator used for every mutation.
            tracker: Lifecycle state tracker.
            registry: Installed-package registry.
            confirm: Asks the user a yes/no question.
        """
        self._operator = operator
        self._tracker = tracker
        self._registry = registry
        self._confirm = confirm

    def execute(self, transaction: TransactionSet) -> TransactionOutcome:
        """Preview, confirm, verify and apply a transaction.

        Nothing on the system changes before the user has confirmed and
        every artifact still to unpack has passed its hash check.

        Args:
            transaction: Resolved transaction set.

        Returns:
            COMPLETED once every entry is configured, CANCELLED if the user
            declined.

        Raises:
            PreviewError: If the preview cannot be rendered.
            IntegrityError: If an artifact fails verification.
            TransactionError: If a mutation step fails.
        """
        show_transaction_preview(transaction)

        if not transaction.force and not self._confirm(CONFIRM_PROMPT):
            console.print("Aborting!", markup=False)
            logger.debug("Transaction declined by user")
            return TransactionOutcome.CANCELLED

        check_transaction_hashes(transaction, self._tracker)

        for entry in transaction:
            self._apply(transaction, entry)

        for entry in transaction:
            self._configure(entry)

        logger.info("Transaction of %d package(s) completed", len(transaction))
        return TransactionOutcome.COMPLETED

    def _apply(self, transaction: TransactionSet, entry: PackageEntry) -> None:
        """Run the apply pass for a single entry."""
        state = self._step(
            TransactionStep.STATE,
            entry,
            lambda: self._tracker.get_state(entry.name, entry.version),
        )
        if state.is_applied:
            logger.debug("Skipping %s: already %s", entry.pkgver, state.value)
            return

        strategy = choose_placement_strategy(entry)
        if (
            upgrade_applies(transaction, entry)
            and strategy is PlacementStrategy.REMOVE_THEN_INSTALL
        ):
            self._remove_installed(entry)

        console.print(
            f"Unpacking {entry.pkgver} (from .../{entry.artifact.filename}) ...",
            markup=False,
            highlight=False,
        )
        essential = strategy is PlacementStrategy.OVERWRITE_IN_PLACE
        self._step(TransactionStep.UNPACK, entry, lambda: self._operator.unpack(entry, essential))

        is_dependency = transaction.registers_as_dependency(entry)
        self._step(
            TransactionStep.REGISTER,
            entry,
            lambda: self._operator.register(entry, is_dependency),
        )
        self._step(
            TransactionStep.STATE,
            entry,
            lambda: self._tracker.set_state(entry.name, PackageState.UNPACKED),
        )

    def _remove_installed(self, entry: PackageEntry) -> None:
        """Remove the installed version an entry replaces."""

        def remove() -> None:
            record = self._registry.get(entry.name)
            if record is None:
                logger.debug("%s is no longer installed, nothing to remove", entry.name)
                return
            self._operator.remove(entry.name, record.version, True)

        self._step(TransactionStep.REMOVE, entry, remove)

    def _configure(self, entry: PackageEntry) -> None:
        """Run the configure pass for a single entry."""
        console.print(f"Configuring package {entry.pkgver} ...", markup=False, highlight=False)
        self._step(
            TransactionStep.CONFIGURE,
            entry,
            lambda: self._operator.configure(entry.name, entry.version),
        )
        self._step(
            TransactionStep.STATE,
            entry,
            lambda: self._tracker.set_state(entry.name, PackageState.CONFIGURED),
        )

    def _step(self, step: TransactionStep, entry: PackageEntry, action: Callable[[], T]) -> T:
        """Run one mutation step, converting failures into TransactionError."""
        try:
            return action()
        except BinpkgError as e:
            message = f"{step.value} of {entry.pkgver} failed: {e}"
            raise TransactionError(step, entry.name, entry.version, message) from e
