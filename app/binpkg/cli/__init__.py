"""CLI package for binpkg.

This package contains the Typer application and all subcommands.
"""

from binpkg.cli.main import app

__all__ = ["app"]
