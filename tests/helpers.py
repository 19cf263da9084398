"""Shared test helpers.

Builders for real tar artifacts and repository indexes, and a recording
package operator for executor and driver tests.
"""

import hashlib
import io
import tarfile
from collections.abc import Iterable
from pathlib import Path

import tomli_w
from binpkg.core.errors import OperatorError
from binpkg.core.registry import RegistryManager
from binpkg.models.package import ArtifactRef, PackageEntry
from binpkg.models.registry import InstalledPackage
from binpkg.models.repository import RepositoryPackage
from binpkg.operators.base import PackageOperator


def build_artifact(
    path: Path,
    files: dict[str, str],
    *,
    script: str | None = None,
    symlinks: dict[str, str] | None = None,
) -> str:
    """Write a gzipped tar artifact and return its SHA-256 digest."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        members = dict(files)
        if script is not None:
            members["INSTALL"] = script
        for name, content in members.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755 if name == "INSTALL" else 0o644
            tar.addfile(info, io.BytesIO(data))
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return hashlib.sha256(path.read_bytes()).hexdigest()


class RepoBuilder:
    """Builds a repository directory with artifacts and an index.toml."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.packages: dict[str, dict[str, object]] = {}

    def add(
        self,
        name: str,
        version: str,
        files: dict[str, str] | None = None,
        *,
        script: str | None = None,
        symlinks: dict[str, str] | None = None,
        essential: bool = False,
        depends: Iterable[str] = (),
        size_installed: int = 0,
    ) -> PackageEntry:
        """Add (or replace) a package and rewrite the index."""
        filename = f"{name}-{version}.tar.gz"
        artifact = self.path / filename
        if files is None:
            files = {f"usr/share/{name}/VERSION": version}
        sha256 = build_artifact(artifact, files, script=script, symlinks=symlinks)

        offer: dict[str, object] = {
            "version": version,
            "filename": filename,
            "sha256": sha256,
            "size_download": artifact.stat().st_size,
            "size_installed": size_installed,
            "essential": essential,
            "depends": list(depends),
        }
        self.packages[name] = offer
        self.write_index()
        return RepositoryPackage.model_validate(offer).to_entry(name, str(self.path))

    def write_index(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        (self.path / "index.toml").write_text(tomli_w.dumps({"packages": self.packages}))


def make_entry(
    name: str = "foo",
    version: str = "1.0",
    **kwargs: object,
) -> PackageEntry:
    """Create a PackageEntry with an artifact that does not exist on disk."""
    default = ArtifactRef(repository="/repo", filename=f"{name}-{version}.tar.gz")
    artifact = kwargs.pop("artifact", default)
    return PackageEntry(
        name=name,
        version=version,
        artifact=artifact,  # type: ignore[arg-type]
        **kwargs,  # type: ignore[arg-type]
    )


class RecordingOperator(PackageOperator):
    """Operator that records calls and keeps the registry in sync.

    ``fail_on`` maps ``(method, package name)`` to the message of the
    OperatorError raised when that call happens.
    """

    def __init__(
        self,
        registry: RegistryManager,
        fail_on: dict[tuple[str, str], str] | None = None,
    ) -> None:
        self.registry = registry
        self.fail_on = dict(fail_on or {})
        self.calls: list[tuple[object, ...]] = []

    def _check(self, method: str, name: str) -> None:
        message = self.fail_on.get((method, name))
        if message is not None:
            raise OperatorError(message)

    def unpack(self, entry: PackageEntry, essential: bool) -> None:
        self.calls.append(("unpack", entry.name, entry.version, essential))
        self._check("unpack", entry.name)

    def remove(self, name: str, version: str, updating: bool) -> None:
        self.calls.append(("remove", name, version, updating))
        self._check("remove", name)
        self.registry.remove(name)

    def register(self, entry: PackageEntry, is_dependency: bool) -> None:
        self.calls.append(("register", entry.name, entry.version, is_dependency))
        self._check("register", entry.name)
        self.registry.add(InstalledPackage.from_entry(entry, automatic=is_dependency, files=[]))

    def configure(self, name: str, version: str) -> None:
        self.calls.append(("configure", name, version))
        self._check("configure", name)

    def methods(self, name: str | None = None) -> list[str]:
        """Called method names, optionally for one package only."""
        return [str(call[0]) for call in self.calls if name is None or call[1] == name]
