"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from binpkg import __version__
from binpkg.cli.commands import autoupdate, init, install, list_cmd
from binpkg.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="binpkg",
    help="Install and update binary packages.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"binpkg version {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    """Route log records to stderr, at DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to the config file.",
        ),
    ] = None,
    rootdir: Annotated[
        Path | None,
        typer.Option(
            "--rootdir",
            "-r",
            help="Override the managed root directory.",
        ),
    ] = None,
) -> None:
    """binpkg - Install and update binary packages.

    Packages come from local repositories and are applied to a root
    directory with progress persisted, so an interrupted run can simply
    be repeated.
    """
    _setup_logging(verbose)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config
    ctx.obj["rootdir"] = rootdir


# Register commands
app.command("install")(install.install_package)
app.command("update")(install.update_package)
app.command("autoupdate")(autoupdate.autoupdate)
app.command("init")(init.init_config)
app.command("list")(list_cmd.list_packages)


if __name__ == "__main__":
    app()
