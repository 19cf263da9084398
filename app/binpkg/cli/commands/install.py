"""Install and update command implementations.

Installs a package with its dependencies, or updates an installed one.
"""

from typing import Annotated

import typer

from binpkg.cli.types import ForceOption, get_session, run_or_exit
from binpkg.core.drivers import install_or_update


def install_package(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Package to install.")],
    force: ForceOption = False,
) -> None:
    """Install a package and its missing dependencies.

    Examples:
        binpkg install foo       # Install with confirmation
        binpkg install foo -f    # Install without asking
    """
    session = get_session(ctx)
    run_or_exit(lambda: install_or_update(session, name, force=force, update=False))


def update_package(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Package to update.")],
    force: ForceOption = False,
) -> None:
    """Update an installed package to the newest available version.

    Examples:
        binpkg update foo        # Update with confirmation
        binpkg update foo -f     # Update without asking
    """
    session = get_session(ctx)
    run_or_exit(lambda: install_or_update(session, name, force=force, update=True))
