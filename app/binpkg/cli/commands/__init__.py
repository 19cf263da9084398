"""CLI commands for binpkg.

This package contains all subcommand implementations.
"""

from binpkg.cli.commands import autoupdate, init, install, list_cmd

__all__ = ["autoupdate", "init", "install", "list_cmd"]
