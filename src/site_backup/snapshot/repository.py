"""Snapshot repository lifecycle: creation, configuration, verification, compaction.

A snapshot repository holds exactly one history line and always at least
one commit: a synthetic empty root created at initialization.

Usage:
    from site_backup.snapshot.repository import RepositoryManager

    manager = RepositoryManager(GitCliBackend())
    await manager.ensure_repository(Path("backups/shop"))
    ...
    await manager.compact(Path("backups/shop"))
"""

import logging
from pathlib import Path

from site_backup.adapters.base import VersionControlBackend
from site_backup.adapters.process import CommandError
from site_backup.errors import RepositoryError
from site_backup.retry import REPOSITORY_INIT_POLICY, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
ROOT_COMMIT_MESSAGE = "Initial commit"

# No compression, background packing, threaded index reads or filesystem
# watchers. Applied at init and again after a failed commit.
RESOURCE_PROFILE: dict[str, str] = {
    "core.compression": "0",
    "gc.auto": "0",
    "pack.threads": "1",
    "pack.window": "0",
    "pack.depth": "0",
    "core.preloadIndex": "false",
    "core.fsmonitor": "false",
    "core.untrackedCache": "false",
}


class RepositoryManager:
    """Owns the per-site snapshot repository on disk.

    Args:
        vcs: Version-control backend.
        init_policy: Retry policy for repository initialization.
    """

    def __init__(
        self,
        vcs: VersionControlBackend,
        init_policy: RetryPolicy = REPOSITORY_INIT_POLICY,
    ):
        self.vcs = vcs
        self.init_policy = init_policy

    async def ensure_repository(self, repo: Path) -> None:
        """Make ``repo`` a ready snapshot repository.

        Idempotent.  An existing repository with at least one commit is
        left untouched.  An existing repository without commits gets the
        resource profile and root commit.  Otherwise a new one is
        initialized (retried per ``init_policy``), given the resource
        profile and a synthetic empty root commit, then verified.

        Raises:
            RepositoryError: If the directory cannot be created, initialization
                is exhausted, the root commit fails, or the repository fails
                verification.
        """
        if (repo / self.vcs.metadata_dir).exists():
            if not await self.vcs.is_repository(repo):
                raise RepositoryError(f"Repository not properly initialized in {repo}")
            if await self.vcs.has_commits(repo):
                return
            logger.warning(f"Repository in {repo} has no commits, creating root commit")
        else:
            await self._initialize(repo)

        try:
            await self.apply_profile(repo)
            await self.vcs.commit(repo, ROOT_COMMIT_MESSAGE, allow_empty=True)
        except CommandError as e:
            raise RepositoryError(f"Failed to create root commit in {repo}: {e}") from e

        await self.verify(repo)

    async def _initialize(self, repo: Path) -> None:
        logger.info(f"Initializing new snapshot repository in {repo}")
        try:
            repo.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RepositoryError(f"Cannot create repository directory {repo}: {e}") from e

        try:
            await call_with_retry(
                self.init_policy,
                self.vcs.init,
                repo,
                DEFAULT_BRANCH,
                description=f"Repository init in {repo}",
            )
        except CommandError as e:
            logger.error(
                f"Failed to initialize repository in {repo} "
                f"after {self.init_policy.max_attempts} attempts"
            )
            raise RepositoryError(
                f"Failed to initialize repository in {repo} "
                f"after {self.init_policy.max_attempts} attempts: {e}"
            ) from e

    async def apply_profile(self, repo: Path) -> None:
        """Write every ``RESOURCE_PROFILE`` key into the repository config.

        Raises:
            CommandError: If any key cannot be set.
        """
        for key, value in RESOURCE_PROFILE.items():
            await self.vcs.set_config(repo, key, value)

    async def verify(self, repo: Path) -> None:
        """Check that ``repo`` is structurally valid and has a root commit.

        Raises:
            RepositoryError: If the backend does not recognize the repository
                or its history is empty.
        """
        if not await self.vcs.is_repository(repo):
            raise RepositoryError(f"Repository not properly initialized in {repo}")
        if not await self.vcs.has_commits(repo):
            raise RepositoryError(f"Repository in {repo} has no commits")

    async def compact(self, repo: Path) -> bool:
        """Best-effort post-commit compaction.

        Never raises and is not retried; a failure is logged as a warning.

        Returns:
            ``True`` when compaction ran cleanly.
        """
        logger.info(f"Cleaning up repository {repo}")
        try:
            await self.vcs.gc(repo)
        except (CommandError, OSError) as e:
            logger.warning(f"Repository compaction failed for {repo}: {e}")
            return False
        return True
