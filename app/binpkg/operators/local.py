"""Local tar artifact operator implementation.

Unpacks tar artifacts into a root directory, records them in the
installed-package registry and runs their INSTALL scripts.
"""

import logging
import os
import subprocess
import tarfile
from pathlib import Path, PurePosixPath
from tempfile import NamedTemporaryFile

from binpkg.core.errors import OperatorError, RegistryError
from binpkg.core.registry import RegistryManager
from binpkg.models.package import PackageEntry
from binpkg.models.registry import InstalledPackage
from binpkg.operators.base import PackageOperator
from binpkg.utils.shell import run_command

logger = logging.getLogger(__name__)

# Top-level artifact member holding the configure script
SCRIPT_MEMBER = "INSTALL"


def _member_path(member: tarfile.TarInfo) -> str:
    """Normalize a member name to a root-relative POSIX path."""
    return str(PurePosixPath(member.name))


class LocalOperator(PackageOperator):
    """Operator for tar artifacts on the local filesystem.

    Attributes:
        rootdir: Root directory packages are installed into.
    """

    def __init__(
        self,
        rootdir: Path,
        registry: RegistryManager,
        scripts_dir: Path,
        configure_timeout: float = 300.0,
    ) -> None:
        """Initialize the operator.

        Args:
            rootdir: Root directory packages are installed into.
            registry: Installed-package registry.
            scripts_dir: Directory configure scripts are stored in.
            configure_timeout: Maximum run time of a configure script.
        """
        self._rootdir = rootdir
        self._registry = registry
        self._scripts_dir = scripts_dir
        self._configure_timeout = configure_timeout

    @property
    def rootdir(self) -> Path:
        """Root directory packages are installed into."""
        return self._rootdir

    def script_path(self, name: str) -> Path:
        """Location of the stored configure script of a package."""
        return self._scripts_dir / f"{name}.{SCRIPT_MEMBER}"

    def unpack(self, entry: PackageEntry, essential: bool) -> None:
        """Extract the artifact of an entry into the root directory.

        Non-essential packages are extracted in one go. Essential packages
        are written file by file to a temporary name and renamed over the
        target, so an existing file is replaced but never missing.

        Raises:
            OperatorError: If the artifact cannot be read or extracted.
        """
        path = entry.artifact.path
        logger.info("Unpacking %s into %s (essential=%s)", entry.pkgver, self._rootdir, essential)

        try:
            self._rootdir.mkdir(parents=True, exist_ok=True)
            with tarfile.open(path, "r:*") as tar:
                members = tar.getmembers()
                payload = [m for m in members if _member_path(m) != SCRIPT_MEMBER]
                script = [m for m in members if _member_path(m) == SCRIPT_MEMBER]

                if essential:
                    self._replace_members(tar, payload)
                else:
                    tar.extractall(self._rootdir, members=payload, filter="data")

                if script:
                    self._store_script(tar, script[0], entry.name)
        except (OSError, tarfile.TarError) as e:
            raise OperatorError(f"Failed to unpack {entry.pkgver}: {e}") from e

    def remove(self, name: str, version: str, updating: bool) -> None:
        """Delete the files of an installed package and drop its record.

        Directories emptied by the removal are pruned. The configure script
        is kept when a newer version follows.

        Raises:
            OperatorError: If the package is not installed at ``version`` or
                its files cannot be removed.
        """
        try:
            record = self._registry.get(name)
        except RegistryError as e:
            raise OperatorError(f"Failed to remove {name}-{version}: {e}") from e

        if record is None:
            raise OperatorError(f"Failed to remove {name}-{version}: package is not installed")
        if record.version != version:
            msg = f"Failed to remove {name}-{version}: installed version is {record.version}"
            raise OperatorError(msg)

        logger.info("Removing %s-%s (updating=%s)", name, version, updating)

        try:
            parents: set[Path] = set()
            for rel in record.files:
                target = self._rootdir / rel
                if target.is_symlink() or target.is_file():
                    target.unlink()
                    parents.add(target.parent)
            self._prune_dirs(parents)

            if not updating:
                self.script_path(name).unlink(missing_ok=True)

            self._registry.remove(name)
        except (OSError, RegistryError) as e:
            raise OperatorError(f"Failed to remove {name}-{version}: {e}") from e

    def register(self, entry: PackageEntry, is_dependency: bool) -> None:
        """Record an unpacked entry in the registry.

        The new record replaces any record of another version and starts
        in state NOT_APPLIED.

        Raises:
            OperatorError: If the artifact or the registry cannot be accessed.
        """
        try:
            with tarfile.open(entry.artifact.path, "r:*") as tar:
                files = sorted(
                    _member_path(m)
                    for m in tar.getmembers()
                    if not m.isdir() and _member_path(m) != SCRIPT_MEMBER
                )
            record = InstalledPackage.from_entry(entry, automatic=is_dependency, files=files)
            self._registry.add(record)
        except (OSError, tarfile.TarError, RegistryError) as e:
            raise OperatorError(f"Failed to register {entry.pkgver}: {e}") from e

    def configure(self, name: str, version: str) -> None:
        """Run ``<script> post <name> <version>`` if the package ships one.

        The script runs inside the root directory, which is also exported
        as ``BINPKG_ROOTDIR``.

        Raises:
            OperatorError: If the script fails, times out or cannot start.
        """
        script = self.script_path(name)
        if not script.exists():
            logger.debug("No configure script for %s-%s", name, version)
            return

        try:
            result = run_command(
                [str(script), "post", name, version],
                timeout=self._configure_timeout,
                cwd=self._rootdir,
                env={"BINPKG_ROOTDIR": str(self._rootdir)},
            )
        except subprocess.TimeoutExpired as e:
            msg = f"Configure script of {name}-{version} timed out after {e.timeout}s"
            raise OperatorError(msg) from e
        except OSError as e:
            raise OperatorError(f"Cannot run configure script of {name}-{version}: {e}") from e

        if not result.success:
            detail = result.stderr.strip() or result.stdout.strip()
            msg = f"Configure script of {name}-{version} exited with {result.returncode}"
            if detail:
                msg = f"{msg}: {detail}"
            raise OperatorError(msg)

    def _replace_members(self, tar: tarfile.TarFile, members: list[tarfile.TarInfo]) -> None:
        """Write members one at a time, renaming each over its target."""
        for member in members:
            member = tarfile.data_filter(member, str(self._rootdir))
            target = self._rootdir / _member_path(member)

            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(f".{target.name}.binpkg-new")
            if tmp.is_symlink() or tmp.exists():
                tmp.unlink()

            if member.issym():
                os.symlink(member.linkname, tmp)
            elif member.isfile() or member.islnk():
                source = tar.extractfile(member)
                if source is None:
                    logger.warning("Skipping unreadable member %s", member.name)
                    continue
                with source, open(tmp, "wb") as f:
                    while chunk := source.read(1024 * 1024):
                        f.write(chunk)
                if member.mode is not None:
                    os.chmod(tmp, member.mode)
            else:
                logger.warning("Skipping special member %s", member.name)
                continue

            os.replace(tmp, target)

    def _store_script(self, tar: tarfile.TarFile, member: tarfile.TarInfo, name: str) -> None:
        source = tar.extractfile(member)
        if source is None:
            return

        self._scripts_dir.mkdir(parents=True, exist_ok=True)
        script = self.script_path(name)
        with (
            source,
            NamedTemporaryFile(mode="wb", dir=self._scripts_dir, delete=False, suffix=".tmp") as f,
        ):
            tmp_path = Path(f.name)
            f.write(source.read())
        os.chmod(tmp_path, 0o755)
        os.replace(tmp_path, script)
        logger.debug("Stored configure script %s", script)

    def _prune_dirs(self, dirs: set[Path]) -> None:
        """Remove directories left empty, deepest first, never the root."""
        root = self._rootdir.resolve()
        candidates: set[Path] = set()
        for directory in dirs:
            current = directory
            while current.resolve() != root and root in current.resolve().parents:
                candidates.add(current)
                current = current.parent

        for directory in sorted(candidates, key=lambda p: len(p.parts), reverse=True):
            if directory.is_dir() and not any(directory.iterdir()):
                directory.rmdir()
