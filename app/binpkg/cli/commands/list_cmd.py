"""List command implementation.

Shows the installed-package registry of the managed root.
"""

import typer

from binpkg.cli.display import create_installed_table
from binpkg.cli.types import get_config
from binpkg.core.errors import RegistryError
from binpkg.core.registry import RegistryManager
from binpkg.utils.formatting import console, print_error, print_info


def list_packages(ctx: typer.Context) -> None:
    """List installed packages with their lifecycle state.

    Examples:
        binpkg list
    """
    config = get_config(ctx)
    registry = RegistryManager(config.registry_path)

    try:
        packages = registry.list_packages()
    except RegistryError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not packages:
        print_info("No packages currently installed.")
        return

    console.print(create_installed_table(packages))
    automatic = sum(1 for pkg in packages if pkg.automatic)
    console.print(
        f"[muted]{len(packages)} package(s), {automatic} installed as dependencies[/muted]"
    )
