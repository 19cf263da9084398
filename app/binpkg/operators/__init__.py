"""Package operators for applying transactions to a root filesystem.

This module provides the abstract operator interface and the local
implementation that works on tar artifacts.
"""

from binpkg.operators.base import PackageOperator
from binpkg.operators.local import LocalOperator

__all__ = ["LocalOperator", "PackageOperator"]
