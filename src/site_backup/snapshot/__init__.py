"""Versioned file-tree snapshots: mirroring, repository lifecycle, commits, restore.

Usage:
    from site_backup.snapshot import (
        MirrorStager,
        RepositoryManager,
        StagedChangeCommitter,
        RestoreResolver,
    )
"""

from site_backup.snapshot.committer import StagedChangeCommitter, backup_message
from site_backup.snapshot.mirror import MirrorStager, build_exclude_patterns
from site_backup.snapshot.models import CommitInfo, CommitOutcome, StagingResult
from site_backup.snapshot.repository import RepositoryManager
from site_backup.snapshot.resolver import RestoreResolver

__all__ = [
    "MirrorStager",
    "build_exclude_patterns",
    "RepositoryManager",
    "StagedChangeCommitter",
    "backup_message",
    "RestoreResolver",
    "CommitInfo",
    "CommitOutcome",
    "StagingResult",
]
