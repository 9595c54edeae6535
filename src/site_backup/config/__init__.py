"""Configuration management: site registry models and TOML loading.

Usage:
    >>> from site_backup.config import load_backup_config, BackupConfig, SiteSpec
"""

from site_backup.config.loader import load_backup_config
from site_backup.config.models import BackupConfig, SiteSpec

__all__ = ["load_backup_config", "BackupConfig", "SiteSpec"]
