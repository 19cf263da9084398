"""Shared types and utilities for CLI commands.

This module provides the option types and the session and error handling
helpers used across multiple CLI command modules.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer

from binpkg.core.config import BinpkgConfig, require_config
from binpkg.core.errors import BinpkgError
from binpkg.core.session import Session, open_session
from binpkg.utils.formatting import print_error

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        "-f",
        help="Apply without asking for confirmation.",
    ),
]


def get_config(ctx: typer.Context) -> BinpkgConfig:
    """Load the configuration selected by the global options.

    Args:
        ctx: Command context carrying ``config_path`` and ``rootdir``.

    Returns:
        Loaded configuration with the ``--rootdir`` override applied.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    obj = ctx.obj or {}
    config_path: Path | None = obj.get("config_path")
    rootdir: Path | None = obj.get("rootdir")

    config = require_config(config_path)
    if rootdir is not None:
        config = config.model_copy(update={"rootdir": rootdir})
    return config


def get_session(ctx: typer.Context) -> Session:
    """Open a session for the configuration selected by the global options."""
    return open_session(get_config(ctx))


def run_or_exit(action: Callable[[], bool]) -> None:
    """Run a driver and turn its outcome into the process exit status.

    Raises:
        typer.Exit: With code 1 if the driver reports failure or raises.
    """
    try:
        ok = action()
    except BinpkgError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not ok:
        raise typer.Exit(code=1)
