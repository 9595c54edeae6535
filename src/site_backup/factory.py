"""Builds backends and the orchestrator from a ``BackupConfig``.

Usage:
    from site_backup.config import load_backup_config
    from site_backup.factory import build_orchestrator

    orchestrator = build_orchestrator(load_backup_config())
"""

from site_backup.adapters.base import DatabaseBackend
from site_backup.adapters.git import GitCliBackend
from site_backup.adapters.mysql import MysqlCliBackend
from site_backup.adapters.postgres import PostgresCliBackend
from site_backup.config.models import BackupConfig
from site_backup.database.dump_restore import DatabaseAdapter
from site_backup.errors import ConfigurationError
from site_backup.orchestrator import Orchestrator
from site_backup.runlog import RunLog
from site_backup.snapshot.committer import StagedChangeCommitter
from site_backup.snapshot.mirror import MirrorStager
from site_backup.snapshot.repository import RepositoryManager
from site_backup.snapshot.resolver import RestoreResolver


def get_database_backend(provider: str, config: BackupConfig) -> DatabaseBackend:
    """Return the database backend for ``provider``.

    Args:
        provider: ``"mysql"`` or ``"postgres"``.
        config: Supplies the optional client binary directories.

    Raises:
        ConfigurationError: If the provider is unknown.
    """
    if provider == "mysql":
        return MysqlCliBackend(bin_path=config.mysql_bin_path)
    if provider == "postgres":
        return PostgresCliBackend(bin_path=config.postgres_bin_path)
    raise ConfigurationError(f"Unknown database provider: {provider}")


def build_orchestrator(
    config: BackupConfig,
    run_log: RunLog | None = None,
) -> Orchestrator:
    """Wire the command-line backends and engine components for ``config``.

    Args:
        config: Loaded configuration.
        run_log: Run log to write to.  Defaults to ``config.run_log``.

    Returns:
        Ready-to-use Orchestrator.
    """
    vcs = GitCliBackend(
        author_name=config.git_author_name,
        author_email=config.git_author_email,
    )
    mirror = MirrorStager()
    repository = RepositoryManager(vcs)
    committer = StagedChangeCommitter(vcs, repository)
    resolver = RestoreResolver(vcs, mirror)

    providers = {site.provider for site in config.sites}
    databases = {
        provider: DatabaseAdapter(get_database_backend(provider, config))
        for provider in sorted(providers)
    }

    return Orchestrator(
        config=config,
        repository=repository,
        committer=committer,
        resolver=resolver,
        mirror=mirror,
        databases=databases,
        run_log=run_log if run_log is not None else RunLog(config.run_log),
    )
