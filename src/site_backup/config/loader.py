"""Site registry loading from TOML."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from site_backup.config.models import BackupConfig
from site_backup.errors import ConfigurationError

CONFIG_ENV_VAR = "SITE_BACKUP_CONFIG"
SITES_ROOT_ENV_VAR = "SITES_ROOT"
DEFAULT_CONFIG_NAME = "sites.toml"

_PATH_KEYS = ("backup_root", "sites_root", "run_log", "mysql_bin_path", "postgres_bin_path")


def default_config_path() -> Path:
    """Config path from ``SITE_BACKUP_CONFIG``, else ``./sites.toml``."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def load_backup_config(config_path: Path | None = None) -> BackupConfig:
    """Load and validate the site registry from a TOML file.

    Relative paths in the file resolve against the file's own directory.
    ``SITES_ROOT`` in the environment overrides ``sites_root``.  An empty
    ``run_log`` disables the run log file.

    Args:
        config_path: Path to the TOML file (default: ``default_config_path()``)

    Returns:
        BackupConfig with all sites

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the TOML is malformed or fails validation
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Site configuration not found: {config_path}\n"
            f"Copy sites.toml.example to sites.toml and list your sites."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    base_dir = config_path.resolve().parent

    if os.environ.get(SITES_ROOT_ENV_VAR):
        data["sites_root"] = os.environ[SITES_ROOT_ENV_VAR]
    data.setdefault("sites_root", ".")
    data.setdefault("backup_root", "backups")
    data.setdefault("run_log", "backup_log.md")

    for key in _PATH_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if value == "":
            data[key] = None
            continue
        path = Path(value).expanduser()
        data[key] = path if path.is_absolute() else base_dir / path

    try:
        return BackupConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid site configuration in {config_path}:\n{e}") from e
