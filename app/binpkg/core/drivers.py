"""Transaction drivers.

The two entry points behind the install, update and autoupdate commands.
Each builds a transaction set through the resolver, reports conditions
that need no transaction and hands everything else to the executor.

Both return True when the requested outcome was reached (including
"nothing to do" and a declined confirmation) and False when a reported
condition prevented it. Failures while applying a transaction propagate
as BinpkgError.
"""

import logging
from dataclasses import replace

from binpkg.core.errors import PackageNotFoundError, ResolveError
from binpkg.core.executor import TransactionOutcome
from binpkg.core.session import Session
from binpkg.models.package import PackageEntry, PackageState
from binpkg.models.registry import InstalledPackage
from binpkg.models.transaction import TransactionMode, TransactionSet
from binpkg.utils.formatting import console, print_error, print_info, print_success

logger = logging.getLogger(__name__)


def install_or_update(
    session: Session,
    name: str,
    *,
    force: bool = False,
    update: bool = False,
) -> bool:
    """Install a package, or update an installed one, with its dependencies.

    A package left unpacked but unconfigured by an earlier run is resumed
    instead.

    Args:
        session: Wired collaborators.
        name: Package name.
        force: Skip the confirmation prompt.
        update: Update an installed package instead of installing.

    Returns:
        True on success, False if the request could not be satisfied.

    Raises:
        BinpkgError: If the registry cannot be read or the transaction fails.
    """
    record = session.registry.get(name)

    if record is not None and record.state is not PackageState.CONFIGURED:
        _report_resume(record)
        try:
            transaction = session.resolver.sort(
                [record.to_entry()],
                mode=TransactionMode.SINGLE_TARGET,
                origin_name=name,
                is_update=update,
            )
        except ResolveError as e:
            print_error(f"Unexpected error: {e}")
            return False
    elif not update:
        if record is not None:
            print_info(f"Package '{name}' is already installed.")
            return True
        try:
            transaction = session.resolver.resolve_install(name)
        except PackageNotFoundError:
            print_error(f"Unable to locate '{name}' in repository pool.")
            return False
        except ResolveError as e:
            print_error(f"Unexpected error: {e}")
            return False
    else:
        if record is None:
            print_error(f"Package '{name}' not installed.")
            return False
        try:
            upgrade = session.resolver.resolve_upgrade(name, record)
        except ResolveError as e:
            print_error(f"Unexpected error: {e}")
            return False
        if upgrade is None:
            print_info(f"Package '{name}' is up to date.")
            return True
        transaction = upgrade

    if transaction.has_missing_deps:
        _report_missing(transaction, f"Unable to locate some required packages for {name}:")
        return False

    return _run(session, replace(transaction, force=force))


def auto_update_all(session: Session, *, force: bool = False) -> bool:
    """Update every installed package that has a newer version available.

    Packages an earlier run left unconfigured are finished as part of the
    same transaction.

    Args:
        session: Wired collaborators.
        force: Skip the confirmation prompt.

    Returns:
        True on success, False if the update could not be assembled.

    Raises:
        BinpkgError: If the registry cannot be read or the transaction fails.
    """
    records = session.registry.list_packages()
    if not records:
        print_info("No packages currently installed.")
        return True

    entries: list[PackageEntry] = []
    for record in records:
        try:
            newer = session.resolver.find_update(record)
        except ResolveError as e:
            print_error(f"Unexpected error: {e}")
            return False

        if newer is not None:
            entries.append(newer)
        elif record.state is not PackageState.CONFIGURED:
            logger.debug("Resuming unconfigured package %s-%s", record.name, record.version)
            entries.append(record.to_entry())

    if not entries:
        print_success("All packages are up to date.")
        return True

    try:
        transaction = session.resolver.sort(
            entries,
            mode=TransactionMode.FLEET_UPDATE,
            is_update=True,
        )
    except ResolveError as e:
        print_error(f"Error while sorting packages: {e}")
        return False

    if transaction.has_missing_deps:
        _report_missing(transaction, "Unable to locate some required packages:")
        return False

    return _run(session, replace(transaction, force=force))


def _run(session: Session, transaction: TransactionSet) -> bool:
    outcome = session.executor.execute(transaction)
    if outcome is TransactionOutcome.CANCELLED:
        logger.info("Transaction cancelled, nothing was changed")
    return True


def _report_resume(record: InstalledPackage) -> None:
    if record.state is PackageState.UNPACKED:
        print_info(f"Package '{record.name}' is unpacked but not configured, resuming.")
    else:
        print_info(f"Package '{record.name}' was not completely unpacked, resuming.")


def _report_missing(transaction: TransactionSet, header: str) -> None:
    """Print every dependency the resolver could not satisfy on stdout."""
    console.print(header, markup=False, highlight=False)
    for dep in transaction.missing_deps:
        console.print(f"  * Missing binary package for: {dep}", markup=False, highlight=False)
