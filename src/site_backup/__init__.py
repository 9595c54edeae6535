"""site-backup: versioned backup and point-in-time restore of sites.

A site is a file tree plus a relational database.  Each backup run mirrors
the tree into a per-site git repository (one commit per run that changed
something) and dumps the database next to it.  A restore resolves a commit
reference, replays that snapshot onto the live tree and re-imports the
database.

Usage:
    from site_backup import load_backup_config, build_orchestrator

    orchestrator = build_orchestrator(load_backup_config())
    result = await orchestrator.run_backup()
"""

__version__ = "0.1.0"

# Config
from site_backup.config.loader import load_backup_config
from site_backup.config.models import BackupConfig, SiteSpec

# Errors
from site_backup.errors import (
    CommitError,
    ConfigurationError,
    DumpError,
    ReferenceNotFoundError,
    RepositoryError,
    RestoreDatabaseError,
    RestoreFileError,
    SiteBackupError,
    StagingError,
)

# Engine
from site_backup.factory import build_orchestrator, get_database_backend
from site_backup.orchestrator import (
    AbortOnFirstFailure,
    BackupRunResult,
    ContinueOnError,
    Orchestrator,
    RestorePlan,
    RestoreRunResult,
    StepResult,
)
from site_backup.retry import RetryPolicy, call_with_retry
from site_backup.runlog import RunLog

__all__ = [
    # Config
    "load_backup_config",
    "BackupConfig",
    "SiteSpec",
    # Errors
    "SiteBackupError",
    "ConfigurationError",
    "RepositoryError",
    "StagingError",
    "CommitError",
    "DumpError",
    "RestoreFileError",
    "RestoreDatabaseError",
    "ReferenceNotFoundError",
    # Engine
    "build_orchestrator",
    "get_database_backend",
    "Orchestrator",
    "ContinueOnError",
    "AbortOnFirstFailure",
    "StepResult",
    "BackupRunResult",
    "RestorePlan",
    "RestoreRunResult",
    "RetryPolicy",
    "call_with_retry",
    "RunLog",
]
