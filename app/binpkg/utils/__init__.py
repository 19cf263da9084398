"""Utility modules for binpkg.

This module exports commonly used utility functions.
"""

from binpkg.utils.formatting import (
    console,
    create_package_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from binpkg.utils.shell import CommandResult, run_command

__all__ = [
    "CommandResult",
    "console",
    "create_package_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
