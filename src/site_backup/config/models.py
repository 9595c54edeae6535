"""Pydantic models for the site registry and backup settings."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from site_backup.errors import ConfigurationError

# Suffix of the per-site database dump file kept next to the snapshot tree
DUMP_SUFFIX = "_backup.sql"
DUMP_PATTERN = f"*{DUMP_SUFFIX}"

DEFAULT_EXCLUDES = [
    "*.log",
    "cache/",
    "tmp/",
    ".git/",
    "node_modules/",
    DUMP_PATTERN,
]


# ============================================================================
# Site registry
# ============================================================================


class SiteSpec(BaseModel):
    """One site: a file tree plus its database, keyed by ``label``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str
    label: str
    db_name: str
    db_user: str
    db_password: str = Field(default="", repr=False)
    provider: Literal["mysql", "postgres"] = "mysql"

    @field_validator("source", "label", "db_name", "db_user")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("label")
    @classmethod
    def _single_path_component(cls, value: str) -> str:
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"'{value}' is not a valid directory name")
        return value

    @property
    def dump_filename(self) -> str:
        """Name of this site's dump artifact, e.g. ``shop_backup.sql``."""
        return f"{self.db_name}{DUMP_SUFFIX}"


# ============================================================================
# Backup settings
# ============================================================================


class BackupConfig(BaseModel):
    """Complete, immutable configuration for one run.

    Paths are stored resolved: ``backup_root`` and ``sites_root`` are
    absolute once produced by ``load_backup_config()``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_root: Path = Path("backups")
    sites_root: Path = Path(".")
    run_log: Path | None = Path("backup_log.md")
    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    capture_deletions: bool = False
    mysql_bin_path: Path | None = None
    postgres_bin_path: Path | None = None
    git_author_name: str = "Site Backup"
    git_author_email: str = "site-backup@localhost"
    sites: list[SiteSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_labels(self) -> "BackupConfig":
        seen: set[str] = set()
        for site in self.sites:
            if site.label in seen:
                raise ValueError(f"duplicate site label '{site.label}'")
            seen.add(site.label)
        return self

    @property
    def labels(self) -> list[str]:
        """Site labels in registry order."""
        return [site.label for site in self.sites]

    def get_site(self, label: str) -> SiteSpec:
        """Look up a site by label.

        Raises:
            ConfigurationError: If no site has this label.
        """
        for site in self.sites:
            if site.label == label:
                return site
        available = ", ".join(self.labels) or "(none)"
        raise ConfigurationError(
            f"Site '{label}' not found in configuration. Available: {available}"
        )

    def repository_path(self, site: SiteSpec) -> Path:
        """Snapshot repository root for ``site``: ``<backup_root>/<label>``."""
        return self.backup_root / site.label

    def dump_path(self, site: SiteSpec) -> Path:
        """Dump artifact path: ``<repository>/<db_name>_backup.sql``."""
        return self.repository_path(site) / site.dump_filename

    def source_path(self, site: SiteSpec) -> Path:
        """Live file tree of ``site``; relative sources resolve under ``sites_root``."""
        source = Path(site.source)
        if source.is_absolute():
            return source
        return self.sites_root / source
