"""Shared Rich display functions for installed packages."""

from rich.table import Table

from binpkg.core.report import humanize_size
from binpkg.models.package import PackageState
from binpkg.models.registry import InstalledPackage
from binpkg.utils.formatting import create_package_table


def format_package_row(pkg: InstalledPackage) -> tuple[str, str, str, str, str]:
    """Format an installed package as a table row with proper styling.

    Manually installed packages get a filled circle, automatic
    dependencies an empty one. Packages not yet configured are
    highlighted in the state column.

    Args:
        pkg: Registry record to format.

    Returns:
        Tuple of (icon, name, version, state, size) with Rich markup.
    """
    if pkg.automatic:
        icon = "[package_auto]\u25cb[/]"  # Empty circle
        name = f"[package_auto]{pkg.name}[/]"
    else:
        icon = "[package_manual]\u25cf[/]"  # Filled circle
        name = f"[package_manual]{pkg.name}[/]"

    style = "state_done" if pkg.state is PackageState.CONFIGURED else "state_pending"
    state = f"[{style}]{pkg.state.value}[/]"

    return (icon, name, f"[muted]{pkg.version}[/]", state, humanize_size(pkg.size_installed))


def create_installed_table(packages: list[InstalledPackage]) -> Table:
    """Create a Rich table listing installed packages.

    Args:
        packages: Registry records, in display order.

    Returns:
        Rich Table with one row per package.
    """
    table = create_package_table()
    for pkg in packages:
        table.add_row(*format_package_row(pkg))
    return table
