"""Autoupdate command implementation.

Updates every installed package that has a newer version available.
"""

import typer

from binpkg.cli.types import ForceOption, get_session, run_or_exit
from binpkg.core.drivers import auto_update_all


def autoupdate(
    ctx: typer.Context,
    force: ForceOption = False,
) -> None:
    """Update all installed packages.

    Packages left unconfigured by an interrupted run are finished as well.

    Examples:
        binpkg autoupdate        # Update with confirmation
        binpkg autoupdate -f     # Update without asking
    """
    session = get_session(ctx)
    run_or_exit(lambda: auto_update_all(session, force=force))
