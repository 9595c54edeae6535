"""Staging and committing the mirrored tree into a snapshot repository.

Staging tries one bulk operation first and falls back to staging files one
at a time (each with its own retries) when the bulk call fails.  Committing
is skipped entirely when the staged tree matches the last commit, so
unchanged sites never grow history.

Usage:
    from site_backup.snapshot.committer import StagedChangeCommitter

    committer = StagedChangeCommitter(vcs, RepositoryManager(vcs))
    staging = await committer.stage_all(repo)
    outcome = await committer.commit_if_changed(repo, backup_message())
"""

import fnmatch
import logging
import os
from datetime import datetime
from pathlib import Path

from site_backup.adapters.base import VersionControlBackend
from site_backup.adapters.process import CommandError
from site_backup.config.models import DUMP_PATTERN
from site_backup.errors import CommitError
from site_backup.retry import COMMIT_POLICY, STAGE_FILE_POLICY, RetryPolicy, call_with_retry
from site_backup.snapshot.models import CommitOutcome, StagingResult
from site_backup.snapshot.repository import RepositoryManager

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 1000
RETRY_LOG_INTERVAL = 100


def backup_message(when: datetime | None = None) -> str:
    """Commit message for a backup run, e.g. ``Backup from 2026-01-15 03:00:00``."""
    when = when or datetime.now()
    return f"Backup from {when:%Y-%m-%d %H:%M:%S}"


class StagedChangeCommitter:
    """Stages a repository's working area and commits it when it changed.

    Args:
        vcs: Version-control backend.
        repository: Manager used to reapply the resource profile after a
            failed commit and to compact after a successful one.
        stage_exclude: Patterns never staged.  Defaults to the dump artifact.
        stage_policy: Per-file retry policy for the batch fallback.
        commit_policy: Retry policy for the commit itself.
    """

    def __init__(
        self,
        vcs: VersionControlBackend,
        repository: RepositoryManager,
        stage_exclude: list[str] | None = None,
        stage_policy: RetryPolicy = STAGE_FILE_POLICY,
        commit_policy: RetryPolicy = COMMIT_POLICY,
    ):
        self.vcs = vcs
        self.repository = repository
        self.stage_exclude = stage_exclude if stage_exclude is not None else [DUMP_PATTERN]
        self.stage_policy = stage_policy
        self.commit_policy = commit_policy

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def _excluded(self, name: str) -> bool:
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.stage_exclude)

    def list_files(self, repo: Path) -> list[str]:
        """Every file under ``repo`` as a sorted list of relative paths.

        Skips the metadata directory and anything matching ``stage_exclude``.
        Symlinks to directories are listed as entries, not descended into.
        """
        files: list[str] = []
        metadata_dir = self.vcs.metadata_dir
        for dirpath, dirnames, filenames in os.walk(repo):
            current = Path(dirpath)
            if current == repo and metadata_dir in dirnames:
                dirnames.remove(metadata_dir)

            for name in list(dirnames):
                if (current / name).is_symlink():
                    dirnames.remove(name)
                    filenames.append(name)

            for name in filenames:
                if self._excluded(name):
                    continue
                files.append((current / name).relative_to(repo).as_posix())

        return sorted(files)

    async def stage_all(self, repo: Path) -> StagingResult:
        """Stage everything in the working area.

        A failed bulk operation falls back to per-file staging of every
        present file plus every tracked file that has disappeared, so
        deletions are recorded too.  The fallback is best-effort: a file
        that exhausts its retries is recorded in ``failed_files`` and the
        remaining files are still staged.

        Returns:
            StagingResult describing the mode used and any unstaged files.
        """
        logger.info(f"Staging files in {repo}")
        try:
            await self.vcs.stage_all(repo, exclude=self.stage_exclude)
            return StagingResult(mode="bulk")
        except CommandError as e:
            logger.warning(f"Bulk staging failed, trying batch processing: {e}")

        files = self.list_files(repo)
        try:
            deleted = await self.vcs.list_deleted(repo)
        except CommandError as e:
            logger.warning(f"Could not list deleted files in {repo}: {e}")
            deleted = []
        files = sorted(set(files).union(deleted))
        total = len(files)
        failed: list[str] = []
        logger.info(f"Staging {total} files individually")

        for index, relative_path in enumerate(files, start=1):
            try:
                await call_with_retry(
                    self.stage_policy,
                    self.vcs.stage_one,
                    repo,
                    relative_path,
                    description=f"Staging file {index} of {total}",
                    quiet=index % RETRY_LOG_INTERVAL != 0,
                )
            except CommandError as e:
                failed.append(relative_path)
                logger.debug(f"Giving up on {relative_path}: {e}")

            if index % PROGRESS_INTERVAL == 0:
                logger.info(f"Processed {index} of {total} files...")

        if failed:
            logger.error(
                f"{len(failed)} of {total} files could not be staged in {repo}"
            )
        else:
            logger.info(f"Completed staging {total} files")

        return StagingResult(mode="batch", total_files=total, failed_files=failed)

    # ------------------------------------------------------------------
    # Committing
    # ------------------------------------------------------------------

    async def commit_if_changed(self, repo: Path, message: str) -> CommitOutcome:
        """Commit the staged set unless it matches the last commit.

        The commit is retried per ``commit_policy``.  After the first failed
        attempt the resource profile is written again before the (longer)
        first wait.  A successful commit is followed by best-effort
        compaction.  On exhaustion, staged changes are left staged.

        Returns:
            ``CommitOutcome.NOOP`` when nothing changed,
            ``CommitOutcome.COMMITTED`` otherwise.

        Raises:
            CommitError: If the change check fails or every commit attempt fails.
        """
        try:
            changed = await self.vcs.has_staged_changes(repo)
        except CommandError as e:
            raise CommitError(f"Could not compare staged changes in {repo}: {e}") from e

        if not changed:
            logger.info(f"No file changes to commit in {repo}")
            return CommitOutcome.NOOP

        async def _after_failure(attempt: int, error: BaseException) -> None:
            if attempt != 1:
                return
            logger.info("Reapplying resource profile to handle resource limitations")
            try:
                await self.repository.apply_profile(repo)
            except CommandError as e:
                logger.warning(f"Could not reapply resource profile in {repo}: {e}")

        try:
            await call_with_retry(
                self.commit_policy,
                self.vcs.commit,
                repo,
                message,
                on_retry=_after_failure,
                description=f"Commit in {repo}",
            )
        except CommandError as e:
            logger.error(
                f"Failed to commit changes in {repo} "
                f"after {self.commit_policy.max_attempts} attempts"
            )
            raise CommitError(
                f"Failed to commit changes in {repo} "
                f"after {self.commit_policy.max_attempts} attempts: {e}"
            ) from e

        logger.info(f"Changes committed in {repo}")
        await self.repository.compact(repo)
        return CommitOutcome.COMMITTED
