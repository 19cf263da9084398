"""binpkg configuration and settings.

This module provides the configuration model and I/O functions for
binpkg: which root filesystem is managed, where the installed-package
registry lives and which repositories packages are taken from.

Configuration is stored in ~/.config/binpkg/config.toml
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from binpkg.core.errors import ConfigError, ConfigNotFoundError, ConfigParseError
from binpkg.core.paths import DEFAULT_DBDIR, get_config_path


class BinpkgConfig(BaseModel):
    """Configuration for binpkg.

    Attributes:
        rootdir: Root directory packages are installed into.
        dbdir: Package database directory, relative to rootdir.
        repositories: Repository directories, searched in order.
        configure_timeout: Maximum run time of a configure script in seconds.
    """

    model_config = ConfigDict(extra="forbid")

    rootdir: Annotated[Path, Field(description="Managed root directory")] = Path("/")
    dbdir: Annotated[str, Field(description="Database directory relative to rootdir")] = (
        DEFAULT_DBDIR
    )
    repositories: Annotated[
        list[Path],
        Field(default_factory=list, description="Repository directories"),
    ]
    configure_timeout: Annotated[
        int,
        Field(ge=1, le=3600, description="Configure script timeout in seconds (1-3600)"),
    ] = 300

    @property
    def db_path(self) -> Path:
        """Absolute path of the package database directory."""
        return self.rootdir / self.dbdir.lstrip("/")

    @property
    def registry_path(self) -> Path:
        """Path of the installed-package registry file."""
        return self.db_path / "registry.json"

    @property
    def scripts_dir(self) -> Path:
        """Directory holding package configure scripts."""
        return self.db_path / "scripts"


def load_config(path: Path | None = None) -> BinpkgConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated BinpkgConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return BinpkgConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_config(config: BinpkgConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The BinpkgConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(_config_to_dict(config), f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: BinpkgConfig) -> dict[str, object]:
    """Convert BinpkgConfig to a dictionary for TOML serialization.

    Only includes non-default values besides rootdir and repositories.

    Args:
        config: The BinpkgConfig to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {
        "rootdir": str(config.rootdir),
        "repositories": [str(repo) for repo in config.repositories],
    }

    if config.dbdir != DEFAULT_DBDIR:
        result["dbdir"] = config.dbdir

    if config.configure_timeout != 300:
        result["configure_timeout"] = config.configure_timeout

    return result


def require_config(config_path: Path | None = None) -> BinpkgConfig:
    """Load configuration or exit with helpful error message.

    Args:
        config_path: Optional custom config path.

    Returns:
        Loaded and validated BinpkgConfig.

    Raises:
        typer.Exit: If the config cannot be loaded.
    """
    import typer

    from binpkg.utils.formatting import print_error, print_info

    path = config_path or get_config_path()
    try:
        return load_config(path)
    except ConfigNotFoundError as e:
        print_error(f"Config not found: {path}")
        print_info("Run 'binpkg init' to create one.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e
