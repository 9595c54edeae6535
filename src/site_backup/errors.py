"""Error taxonomy for the backup and restore engine.

Every engine failure that survives its local retry policy surfaces as one
of these exceptions. The orchestrator decides whether a failure ends the
run (restore) or is recorded and skipped past (backup).
"""


class SiteBackupError(Exception):
    """Base class for all site-backup errors."""

    pass


class ConfigurationError(SiteBackupError):
    """Raised for an unknown site label or a malformed site registry."""

    pass


class RepositoryError(SiteBackupError):
    """Raised when a snapshot repository cannot be initialized or verified."""

    pass


class StagingError(SiteBackupError):
    """Raised when mirroring a file tree fails."""

    pass


class CommitError(SiteBackupError):
    """Raised when committing staged changes exhausts its retries."""

    pass


class DumpError(SiteBackupError):
    """Raised when a database export exhausts its retries."""

    pass


class RestoreFileError(SiteBackupError):
    """Raised when a snapshot cannot be checked out or pushed to its target."""

    pass


class ReferenceNotFoundError(RestoreFileError):
    """Raised when no commit in a repository matches a requested reference."""

    pass


class RestoreDatabaseError(SiteBackupError):
    """Raised when a database import fails or its dump artifact is missing."""

    pass
