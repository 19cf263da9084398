"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from binpkg.core.config import BinpkgConfig, save_config
from binpkg.core.registry import RegistryManager
from binpkg.core.state import PackageStateTracker
from helpers import RecordingOperator, RepoBuilder


@pytest.fixture
def rootdir(tmp_path: Path) -> Path:
    """Empty managed root directory."""
    path = tmp_path / "root"
    path.mkdir()
    return path


@pytest.fixture
def registry(rootdir: Path) -> RegistryManager:
    """Registry inside the managed root."""
    return RegistryManager(rootdir / "var" / "db" / "binpkg" / "registry.json")


@pytest.fixture
def tracker(registry: RegistryManager) -> PackageStateTracker:
    """State tracker on top of the registry fixture."""
    return PackageStateTracker(registry)


@pytest.fixture
def repo(tmp_path: Path) -> RepoBuilder:
    """Repository directory with an initially empty index."""
    builder = RepoBuilder(tmp_path / "repo")
    builder.write_index()
    return builder


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[str], RepoBuilder]:
    """Factory for additional repositories."""

    def _make(name: str) -> RepoBuilder:
        builder = RepoBuilder(tmp_path / name)
        builder.write_index()
        return builder

    return _make


@pytest.fixture
def recording_operator(registry: RegistryManager) -> RecordingOperator:
    """Operator fake that records every call."""
    return RecordingOperator(registry)


@pytest.fixture
def config(rootdir: Path, repo: RepoBuilder) -> BinpkgConfig:
    """Configuration managing the rootdir fixture from the repo fixture."""
    return BinpkgConfig(rootdir=rootdir, repositories=[repo.path])


@pytest.fixture
def config_file(tmp_path: Path, config: BinpkgConfig) -> Path:
    """The config fixture saved to a TOML file."""
    return save_config(config, tmp_path / "config.toml")
