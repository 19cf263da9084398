"""Transaction preview and size reporting.

Prints the package list and the aggregated download and installed sizes
shown to the user before a transaction is confirmed.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from binpkg.core.errors import PreviewError
from binpkg.models.package import PackageEntry
from binpkg.models.transaction import TransactionMode, TransactionSet
from binpkg.utils.formatting import console

_SIZE_UNITS = ("B", "K", "M", "G", "T", "P", "E")

# Columns reserved per package token on top of name and version
_TOKEN_OVERHEAD = 4
_INDENT = "  "


@dataclass(frozen=True, slots=True)
class TransactionSizes:
    """Aggregated sizes of a transaction.

    Attributes:
        download: Sum of artifact sizes in bytes.
        installed: Sum of installed sizes in bytes.
    """

    download: int = 0
    installed: int = 0


def compute_sizes(entries: Iterable[PackageEntry]) -> TransactionSizes:
    """Sum the download and installed sizes of all entries."""
    download = 0
    installed = 0
    for entry in entries:
        download += entry.size_download
        installed += entry.size_installed
    return TransactionSizes(download=download, installed=installed)


def humanize_size(size: int) -> str:
    """Render a byte count in the largest fitting binary unit.

    Examples:
        >>> humanize_size(512)
        '512B'
        >>> humanize_size(1536)
        '1.5K'
        >>> humanize_size(10 * 1024 * 1024)
        '10M'

    Raises:
        PreviewError: If the size is negative.
    """
    if size < 0:
        raise PreviewError(f"Invalid size: {size}")

    value = float(size)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            break
        value /= 1024

    if unit == "B":
        return f"{size}B"
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text}{unit}"


def wrap_package_list(entries: Iterable[PackageEntry], width: int = 80) -> list[str]:
    """Lay out ``name-version`` tokens over lines of bounded width.

    Each token costs ``len(name) + len(version) + 4`` columns. A new line
    starts when adding a token would push the running count past
    ``width``.

    Returns:
        Indented lines, empty if there are no entries.
    """
    lines: list[str] = []
    current: list[str] = []
    columns = 0

    for entry in entries:
        cost = len(entry.name) + len(entry.version) + _TOKEN_OVERHEAD
        if current and columns + cost > width:
            lines.append(_INDENT + " ".join(current))
            current = []
            columns = 0
        current.append(entry.pkgver)
        columns += cost

    if current:
        lines.append(_INDENT + " ".join(current))
    return lines


def show_transaction_preview(transaction: TransactionSet) -> None:
    """Print the package list and size totals of a transaction.

    Raises:
        PreviewError: If the preview cannot be rendered.
    """
    verb = "updated" if transaction.mode is TransactionMode.FLEET_UPDATE else "installed"
    sizes = compute_sizes(transaction)
    download = humanize_size(sizes.download)
    installed = humanize_size(sizes.installed)

    console.print()
    console.print(f"The following new packages will be {verb}:", markup=False)
    console.print()
    for line in wrap_package_list(transaction):
        console.print(line, markup=False, highlight=False)
    console.print()
    console.print(f"Total download size: {download}", markup=False, highlight=False)
    console.print(f"Total installed size: {installed}", markup=False, highlight=False)
    console.print()
