"""One-way file-tree mirroring with rsync.

Used in both directions: live site to snapshot repository on backup
(``delete_extraneous=False``), and checked-out snapshot to live site on
restore (``delete_extraneous=True``).

Usage:
    from site_backup.snapshot.mirror import MirrorStager, build_exclude_patterns

    stager = MirrorStager()
    await stager.mirror(source, repo, build_exclude_patterns(config.exclude), False)
"""

import logging
from pathlib import Path

from site_backup.adapters.process import CommandError, run_command
from site_backup.config.models import DUMP_PATTERN
from site_backup.errors import StagingError

logger = logging.getLogger(__name__)

METADATA_DIR = ".git"


def build_exclude_patterns(
    configured: list[str] | None = None,
    metadata_dir: str = METADATA_DIR,
) -> list[str]:
    """Return the full exclusion list: metadata dir and dump artifact first.

    The two mandatory patterns are always present, whatever the
    configured list holds.  Duplicates are dropped, order is kept.

    Example:
        >>> build_exclude_patterns(["*.log", ".git"])
        ['.git', '*_backup.sql', '*.log']
    """
    patterns: list[str] = []
    for pattern in [metadata_dir, DUMP_PATTERN, *(configured or [])]:
        if pattern not in patterns:
            patterns.append(pattern)
    return patterns


class MirrorStager:
    """Copies one directory tree into another, preserving attributes.

    Excluded paths are neither copied nor, in delete mode, removed from
    the destination (rsync leaves excluded files alone unless told
    ``--delete-excluded``, which is never passed).

    Args:
        rsync_path: Path or name of the rsync executable.
    """

    def __init__(self, rsync_path: str = "rsync"):
        self.rsync_path = rsync_path

    def build_command(
        self,
        source: Path,
        destination: Path,
        exclude: list[str],
        delete_extraneous: bool,
    ) -> list[str]:
        """Build the rsync argument list.

        Trailing slashes make rsync copy the *contents* of ``source`` into
        ``destination`` rather than the directory itself.
        """
        cmd = [self.rsync_path, "-a"]
        if delete_extraneous:
            cmd.append("--delete")
        cmd += [f"--exclude={pattern}" for pattern in exclude]
        cmd += [f"{str(source).rstrip('/')}/", f"{str(destination).rstrip('/')}/"]
        return cmd

    async def mirror(
        self,
        source: Path,
        destination: Path,
        exclude: list[str],
        delete_extraneous: bool,
    ) -> None:
        """Mirror ``source`` into ``destination``.

        Not retried: any failure is final for the current step.

        Raises:
            StagingError: If ``source`` is not a directory, ``destination``
                cannot be created, or rsync fails.
        """
        if not source.is_dir():
            raise StagingError(f"Source directory not found: {source}")

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Cannot create destination {destination}: {e}") from e

        cmd = self.build_command(source, destination, exclude, delete_extraneous)

        mode = "mirroring (delete mode)" if delete_extraneous else "copying"
        logger.info(f"{mode.capitalize()} {source} -> {destination}")

        try:
            await run_command(cmd)
        except CommandError as e:
            raise StagingError(f"Failed {mode} {source} to {destination}: {e}") from e
