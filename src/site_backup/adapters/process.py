"""Async subprocess runner shared by the command-line backends.

Usage:
    from site_backup.adapters.process import run_command, CommandError

    result = await run_command(["git", "status"], cwd=repo_path)
    print(result.stdout)
"""

import asyncio
import logging
import os
from contextlib import ExitStack
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of a finished external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


class CommandError(Exception):
    """Raised when an external command exits non-zero or cannot be started."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"{' '.join(self.command[:2])} exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


async def run_command(
    args: list[str],
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    stdout_path: Path | None = None,
    stdin_path: Path | None = None,
    check: bool = True,
) -> CommandResult:
    """Run an external command to completion.

    Args:
        args: Program and arguments.  No shell is involved.
        cwd: Working directory for the child process.
        env: Extra environment variables layered over ``os.environ``.
        stdout_path: When given, the child's stdout is written to this file
            (truncating it) instead of being captured.
        stdin_path: When given, the child's stdin is read from this file.
        check: Raise ``CommandError`` on a non-zero exit status.

    Returns:
        ``CommandResult`` with the captured output.

    Raises:
        CommandError: If a redirect file cannot be opened, the program
            cannot be started, or it exits non-zero while
            ``check`` is set.
    """
    child_env = {**os.environ, **env} if env else None
    logger.debug(f"Running: {' '.join(args)}")

    with ExitStack() as stack:
        try:
            stdout_file = (
                stack.enter_context(open(stdout_path, "wb")) if stdout_path is not None else None
            )
            stdin_file = (
                stack.enter_context(open(stdin_path, "rb")) if stdin_path is not None else None
            )
        except OSError as e:
            raise CommandError(args, 126, f"cannot open redirect file: {e}") from e

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd is not None else None,
                env=child_env,
                stdin=stdin_file if stdin_file is not None else asyncio.subprocess.DEVNULL,
                stdout=stdout_file if stdout_file is not None else asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CommandError(args, 127, f"command not found: {args[0]}") from e
        except OSError as e:
            raise CommandError(args, 126, f"cannot run {args[0]}: {e}") from e

        stdout_bytes, stderr_bytes = await proc.communicate()

    result = CommandResult(
        args=list(args),
        returncode=proc.returncode,
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
    )

    if check and result.returncode != 0:
        raise CommandError(args, result.returncode, result.stderr)

    return result
