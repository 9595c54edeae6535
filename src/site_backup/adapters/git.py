"""Git command-line implementation of ``VersionControlBackend``.

Usage:
    from site_backup.adapters.git import GitCliBackend

    vcs = GitCliBackend()
    await vcs.init(repo, "main")
    await vcs.commit(repo, "Initial commit", allow_empty=True)
"""

from pathlib import Path

from site_backup.adapters.process import CommandError, run_command


class GitCliBackend:
    """``VersionControlBackend`` backed by the ``git`` binary.

    Commits are attributed to a fixed identity passed with ``-c`` so
    backups work on hosts without a global git identity.

    Args:
        git_path: Path or name of the git executable.
        author_name: ``user.name`` used for every commit.
        author_email: ``user.email`` used for every commit.
    """

    metadata_dir = ".git"

    def __init__(
        self,
        git_path: str = "git",
        author_name: str = "Site Backup",
        author_email: str = "site-backup@localhost",
    ):
        self.git_path = git_path
        self.author_name = author_name
        self.author_email = author_email

    async def _git(self, repo: Path, *args: str, check: bool = True):
        return await run_command(
            [
                self.git_path,
                "-C",
                str(repo),
                "-c",
                f"user.name={self.author_name}",
                "-c",
                f"user.email={self.author_email}",
                *args,
            ],
            env={"GIT_DISCOVERY_ACROSS_FILESYSTEM": "1"},
            check=check,
        )

    async def init(self, repo: Path, default_branch: str) -> None:
        repo.mkdir(parents=True, exist_ok=True)
        await self._git(repo, "init", "--quiet", f"--initial-branch={default_branch}")

    async def set_config(self, repo: Path, key: str, value: str) -> None:
        await self._git(repo, "config", key, value)

    async def commit(self, repo: Path, message: str, allow_empty: bool = False) -> None:
        args = ["commit", "--quiet", "-m", message]
        if allow_empty:
            args.insert(1, "--allow-empty")
        await self._git(repo, *args)

    async def stage_all(self, repo: Path, exclude: list[str] | None = None) -> None:
        pathspecs = ["."] + [f":(exclude){pattern}" for pattern in exclude or []]
        await self._git(repo, "add", "--all", "--", *pathspecs)

    async def stage_one(self, repo: Path, relative_path: str) -> None:
        await self._git(repo, "add", "--", relative_path)

    async def has_staged_changes(self, repo: Path) -> bool:
        result = await self._git(repo, "diff", "--cached", "--quiet", check=False)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise CommandError(result.args, result.returncode, result.stderr)

    async def log(self, repo: Path, pretty_format: str) -> list[str]:
        result = await self._git(repo, "log", f"--pretty=format:{pretty_format}")
        return [line for line in result.stdout.splitlines() if line]

    async def rev_parse(self, repo: Path, *args: str) -> str:
        result = await self._git(repo, "rev-parse", *args)
        return result.stdout.strip()

    async def list_deleted(self, repo: Path) -> list[str]:
        result = await self._git(repo, "ls-files", "--deleted")
        return [line for line in result.stdout.splitlines() if line]

    async def is_repository(self, repo: Path) -> bool:
        if not (repo / self.metadata_dir).is_dir():
            return False
        result = await self._git(repo, "rev-parse", "--git-dir", check=False)
        return result.returncode == 0

    async def has_commits(self, repo: Path) -> bool:
        result = await self._git(repo, "rev-parse", "--verify", "--quiet", "HEAD", check=False)
        return result.returncode == 0

    async def checkout(self, repo: Path, reference: str) -> None:
        # Paths absent from the reference are removed from the index and working area
        await self._git(repo, "checkout", "--no-overlay", reference, "--", ".")

    async def gc(self, repo: Path) -> None:
        # A leftover gc.log makes every later `gc --auto` bail out early
        (repo / self.metadata_dir / "gc.log").unlink(missing_ok=True)
        await self._git(repo, "gc", "--auto", "--quiet")
