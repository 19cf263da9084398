"""Init command implementation.

Creates the binpkg configuration file.
"""

from pathlib import Path
from typing import Annotated

import typer

from binpkg.core.config import BinpkgConfig, save_config
from binpkg.core.errors import ConfigError
from binpkg.core.paths import get_config_path
from binpkg.utils.formatting import console, print_error, print_info, print_success, print_warning


def _show_config_summary(config: BinpkgConfig, output_path: Path) -> None:
    """Display a summary of the created configuration.

    Args:
        config: The configuration to summarize.
        output_path: Path where the configuration is saved.
    """
    console.print()
    console.print("[bold]Configuration Summary[/bold]")
    console.print(f"  Root: [info]{config.rootdir}[/info]")
    console.print(f"  Database: [muted]{config.db_path}[/muted]")
    console.print(f"  Output: [muted]{output_path}[/muted]")
    if config.repositories:
        console.print("  Repositories:")
        for repo in config.repositories:
            console.print(f"    [muted]{repo}[/muted]")
    console.print()


def init_config(
    ctx: typer.Context,
    rootdir: Annotated[
        Path,
        typer.Option(
            "--rootdir",
            "-r",
            help="Root directory packages are installed into.",
        ),
    ] = Path("/"),
    repositories: Annotated[
        list[Path] | None,
        typer.Option(
            "--repository",
            help="Repository directory (repeatable, searched in order).",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing configuration.",
        ),
    ] = False,
) -> None:
    """Create the binpkg configuration file.

    Examples:
        binpkg init --repository /srv/repo             # Manage / from one repository
        binpkg init --rootdir /mnt/target --repository /srv/repo
        binpkg init --force                            # Overwrite existing config
    """
    obj = ctx.obj or {}
    output_path: Path = obj.get("config_path") or get_config_path()

    if output_path.exists():
        if not force:
            print_error(f"Config already exists: {output_path}")
            print_info("Use --force to overwrite.")
            raise typer.Exit(code=1)
        print_warning(f"Overwriting existing config: {output_path}")

    repos = [repo.resolve() for repo in repositories or []]
    missing = [repo for repo in repos if not repo.is_dir()]
    for repo in missing:
        print_warning(f"Repository directory does not exist: {repo}")

    config = BinpkgConfig(rootdir=rootdir.resolve(), repositories=repos)
    _show_config_summary(config, output_path)

    try:
        saved_path = save_config(config, output_path)
    except ConfigError as e:
        print_error(f"Failed to save config: {e}")
        raise typer.Exit(code=1) from e

    print_success(f"Config created: {saved_path}")
