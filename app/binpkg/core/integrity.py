"""Artifact integrity checks.

Every artifact a transaction is about to unpack is hashed and compared
against the digest published by its repository before the system is
touched at all.
"""

import hashlib
import logging
from pathlib import Path

from binpkg.core.errors import HashMismatchError, IntegrityError, StateError
from binpkg.core.state import PackageStateTracker
from binpkg.models.package import PackageEntry
from binpkg.models.transaction import TransactionSet
from binpkg.utils.formatting import console

logger = logging.getLogger(__name__)

# Read artifacts in 1 MiB chunks
_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_artifact_hash(entry: PackageEntry) -> None:
    """Verify the artifact of an entry against its expected digest.

    Args:
        entry: Entry whose artifact is checked.

    Raises:
        HashMismatchError: If the digest differs.
        IntegrityError: If the artifact is missing or cannot be read.
    """
    filename = entry.artifact.filename
    try:
        actual = sha256_file(entry.artifact.path)
    except OSError as e:
        cause = e.strerror or str(e)
        msg = f"Unexpected error while checking hash for {filename} ({cause})"
        raise IntegrityError(msg) from e

    if actual.lower() != entry.sha256.lower():
        logger.debug("%s: expected %s, got %s", filename, entry.sha256, actual)
        raise HashMismatchError(f"Hash mismatch for {filename}, exiting.")


def check_transaction_hashes(
    transaction: TransactionSet,
    tracker: PackageStateTracker,
) -> None:
    """Verify every artifact a transaction still has to unpack.

    Entries already unpacked by a previous run are skipped. The first
    failure aborts the check.

    Raises:
        HashMismatchError: If an artifact digest differs.
        IntegrityError: If an artifact cannot be read or its state looked up.
    """
    console.print("Checking binary package file(s) integrity...", markup=False)

    for entry in transaction:
        try:
            state = tracker.get_state(entry.name, entry.version)
        except StateError as e:
            msg = f"Unexpected error while checking hash for {entry.artifact.filename} ({e})"
            raise IntegrityError(msg) from e

        if state.is_applied:
            logger.debug("Skipping hash check for %s: already %s", entry.pkgver, state.value)
            continue

        verify_artifact_hash(entry)
        logger.debug("Verified %s", entry.artifact.filename)
