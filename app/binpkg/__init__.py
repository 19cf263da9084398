"""binpkg - transaction executor for a binary package manager.

Applies dependency-ordered sets of binary packages to a root filesystem,
persisting per-package progress so interrupted runs can resume.
"""

__version__ = "0.1.0"
