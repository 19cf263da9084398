"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

# Semantic styles used in markup across the CLI
BINPKG_THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "package_manual": "bold #69B9A1",
        "package_auto": "#226666",
        "state_pending": "#faf870",
        "state_done": "#03b971",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=BINPKG_THEME, color_system=_detect_color_system())
err_console = Console(theme=BINPKG_THEME, stderr=True, color_system=_detect_color_system())


def create_package_table(title: str = "Installed Packages") -> Table:
    """Create a pre-configured table for displaying installed packages.

    Args:
        title: Table title.

    Returns:
        Rich Table with status icon, name, version, state and size columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    # Status column: icon only, no header text
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("State")
    table.add_column("Size", style="info", justify="right")
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")
