"""Resolving commit references and replaying snapshots onto a live target.

Usage:
    from site_backup.snapshot.resolver import RestoreResolver

    resolver = RestoreResolver(vcs, MirrorStager())
    reference = await resolver.resolve_reference(repo, "a1b2")
    await resolver.materialize(repo, reference, Path("/var/www/shop"), excludes)
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from site_backup.adapters.base import VersionControlBackend
from site_backup.adapters.process import CommandError
from site_backup.errors import ReferenceNotFoundError, RestoreFileError, StagingError
from site_backup.snapshot.mirror import MirrorStager
from site_backup.snapshot.models import CommitInfo

logger = logging.getLogger(__name__)

# Unit separator keeps subjects containing " - " or tabs intact
_FIELD_SEP = "\x1f"
LOG_FORMAT = _FIELD_SEP.join(["%H", "%h", "%ct", "%cr", "%s"])


def parse_log_line(line: str) -> CommitInfo:
    """Parse one line produced with ``LOG_FORMAT`` into a ``CommitInfo``."""
    full_id, short_id, timestamp, relative_age, message = line.split(_FIELD_SEP, 4)
    return CommitInfo(
        id=full_id,
        short_id=short_id,
        timestamp=datetime.fromtimestamp(int(timestamp), tz=timezone.utc),
        relative_age=relative_age,
        message=message,
    )


class RestoreResolver:
    """Reads snapshot history and materializes historical states.

    Args:
        vcs: Version-control backend.
        mirror: Stager used to push a checked-out snapshot to its target.
    """

    def __init__(self, vcs: VersionControlBackend, mirror: MirrorStager):
        self.vcs = vcs
        self.mirror = mirror

    async def require_repository(self, repo: Path) -> None:
        """Raise ``RestoreFileError`` unless ``repo`` is a valid repository."""
        if not (repo / self.vcs.metadata_dir).is_dir():
            raise RestoreFileError(f"No snapshot repository found at {repo}")
        if not await self.vcs.is_repository(repo):
            raise RestoreFileError(f"Repository not properly initialized in {repo}")

    async def list_commits(self, repo: Path) -> list[CommitInfo]:
        """Full history of ``repo``, most recent first.

        Raises:
            RestoreFileError: If the repository is missing or unreadable.
        """
        await self.require_repository(repo)
        try:
            lines = await self.vcs.log(repo, LOG_FORMAT)
        except CommandError as e:
            raise RestoreFileError(f"Could not read history of {repo}: {e}") from e
        return [parse_log_line(line) for line in lines]

    async def resolve_reference(self, repo: Path, requested: str | None = None) -> str:
        """Resolve ``requested`` to an abbreviated commit id.

        An empty request resolves to the current head.  Otherwise the request
        is a prefix: history is scanned most recent first and the first commit
        whose id starts with it wins, so a prefix shared by several commits
        picks the newest.

        Raises:
            ReferenceNotFoundError: If no commit matches.
            RestoreFileError: If the repository is missing or unreadable.
        """
        requested = (requested or "").strip()

        if not requested:
            await self.require_repository(repo)
            try:
                head = await self.vcs.rev_parse(repo, "--short", "HEAD")
            except CommandError as e:
                raise RestoreFileError(f"Could not resolve latest commit in {repo}: {e}") from e
            logger.info(f"No commit given, using latest commit: {head}")
            return head

        prefix = requested.lower()
        for commit in await self.list_commits(repo):
            if commit.id.startswith(prefix):
                logger.info(f"Using commit: {commit.short_id}")
                return commit.short_id

        raise ReferenceNotFoundError(f"Could not find commit matching: {requested}")

    async def checkout_snapshot(self, repo: Path, reference: str) -> None:
        """Restore the full tree of ``reference`` into the working area.

        Raises:
            RestoreFileError: If the reference is invalid or checkout fails.
        """
        logger.info(f"Checking out files from commit {reference}")
        try:
            await self.vcs.checkout(repo, reference)
        except CommandError as e:
            raise RestoreFileError(f"Failed to checkout commit {reference} in {repo}: {e}") from e

    async def materialize(
        self,
        repo: Path,
        reference: str,
        target: Path,
        exclude: list[str],
    ) -> None:
        """Check out ``reference`` and mirror it onto ``target`` in delete mode.

        Anything at ``target`` that is not in the snapshot is removed, except
        paths matching ``exclude``.

        Raises:
            RestoreFileError: If checkout or mirroring fails.
        """
        await self.checkout_snapshot(repo, reference)
        try:
            await self.mirror.mirror(repo, target, exclude, delete_extraneous=True)
        except StagingError as e:
            raise RestoreFileError(f"Failed to copy snapshot {reference} to {target}: {e}") from e
