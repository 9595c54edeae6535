"""Backend protocol definitions.

Defines the two ports the engine drives: ``VersionControlBackend`` for the
per-site snapshot repository and ``DatabaseBackend`` for database export
and import.  All methods are ``async def``.

Usage:
    from site_backup.adapters.base import DatabaseBackend, VersionControlBackend

    async def snapshot(vcs: VersionControlBackend, repo: Path) -> None:
        await vcs.stage_all(repo, exclude=["*_backup.sql"])
        if await vcs.has_staged_changes(repo):
            await vcs.commit(repo, "Backup from 2026-01-01 00:00:00")
"""

from pathlib import Path
from typing import Protocol


class VersionControlBackend(Protocol):
    """Operations consumed on a per-site snapshot repository.

    Every method raises ``CommandError`` when the underlying operation
    fails.  ``repo`` is always the repository's working-area root.
    """

    metadata_dir: str

    async def init(self, repo: Path, default_branch: str) -> None:
        """Initialize a new repository with the given history-line name."""
        ...

    async def set_config(self, repo: Path, key: str, value: str) -> None:
        """Set one repository-local configuration key."""
        ...

    async def commit(self, repo: Path, message: str, allow_empty: bool = False) -> None:
        """Commit the staged set.

        Args:
            repo: Repository root.
            message: Commit message.
            allow_empty: Create the commit even when nothing is staged.
        """
        ...

    async def stage_all(self, repo: Path, exclude: list[str] | None = None) -> None:
        """Stage every change under ``repo`` except paths matching ``exclude``."""
        ...

    async def stage_one(self, repo: Path, relative_path: str) -> None:
        """Stage a single path given relative to ``repo``."""
        ...

    async def has_staged_changes(self, repo: Path) -> bool:
        """Return ``True`` when the staged set differs from the last commit."""
        ...

    async def log(self, repo: Path, pretty_format: str) -> list[str]:
        """Return one formatted line per commit, most recent first."""
        ...

    async def rev_parse(self, repo: Path, *args: str) -> str:
        """Run a revision lookup and return its trimmed output.

        Example:
            short_head = await vcs.rev_parse(repo, "--short", "HEAD")
        """
        ...

    async def list_deleted(self, repo: Path) -> list[str]:
        """Return tracked paths that are missing from the working area."""
        ...

    async def is_repository(self, repo: Path) -> bool:
        """Return ``True`` when ``repo`` is a structurally valid repository."""
        ...

    async def has_commits(self, repo: Path) -> bool:
        """Return ``True`` when the current history line has a resolvable head."""
        ...

    async def checkout(self, repo: Path, reference: str) -> None:
        """Restore the full tree of ``reference`` into the working area.

        Tracked paths absent from ``reference`` are removed.  Content only:
        the current history line is not switched and no commit is created.
        """
        ...

    async def gc(self, repo: Path) -> None:
        """Run automatic, quiet garbage collection."""
        ...


class DatabaseBackend(Protocol):
    """Database export and import through the database's client tools."""

    async def export(
        self,
        db_name: str,
        user: str,
        credential: str,
        output_path: Path,
    ) -> None:
        """Write a full export of ``db_name`` to ``output_path``.

        Raises:
            CommandError: If the export tool fails.
        """
        ...

    async def import_(
        self,
        db_name: str,
        user: str,
        credential: str,
        input_path: Path,
    ) -> None:
        """Replay the export at ``input_path`` into ``db_name``.

        Raises:
            CommandError: If the import tool fails.
        """
        ...
