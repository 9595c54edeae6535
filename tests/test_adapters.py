"""Tests for the command-line backends: argument lists, environment and exit handling."""

import inspect
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from site_backup.adapters.base import DatabaseBackend, VersionControlBackend
from site_backup.adapters.git import GitCliBackend
from site_backup.adapters.mysql import MysqlCliBackend, resolve_binary
from site_backup.adapters.postgres import PostgresCliBackend
from site_backup.adapters.process import CommandError, CommandResult, run_command


def _result(returncode: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


GIT_PREFIX = [
    "git",
    "-C",
    "/backups/shop",
    "-c",
    "user.name=Site Backup",
    "-c",
    "user.email=site-backup@localhost",
]


def _protocol_methods(protocol: type) -> list[str]:
    return [
        name
        for name, member in vars(protocol).items()
        if not name.startswith("_") and inspect.isfunction(member)
    ]


class TestProtocols:
    """Ports are async, and each backend implements every port method as async."""

    @pytest.mark.parametrize(
        "protocol,backend_cls",
        [
            (VersionControlBackend, GitCliBackend),
            (DatabaseBackend, MysqlCliBackend),
            (DatabaseBackend, PostgresCliBackend),
        ],
    )
    def test_backend_implements_protocol(self, protocol, backend_cls):
        methods = _protocol_methods(protocol)
        assert methods
        for name in methods:
            assert inspect.iscoroutinefunction(getattr(protocol, name)), f"{name} must be async def"
            assert inspect.iscoroutinefunction(getattr(backend_cls, name)), (
                f"{backend_cls.__name__}.{name} must be async def"
            )

    def test_git_metadata_dir(self):
        assert GitCliBackend.metadata_dir == ".git"


class TestGitCliBackend:
    """GitCliBackend builds git invocations against the repository path."""

    @pytest.fixture
    def runner(self):
        with patch(
            "site_backup.adapters.git.run_command", new=AsyncMock(return_value=_result())
        ) as mock:
            yield mock

    async def test_identity_and_discovery_env(self, runner):
        await GitCliBackend().stage_one(Path("/backups/shop"), "index.php")

        args = runner.await_args.args[0]
        assert args == GIT_PREFIX + ["add", "--", "index.php"]
        assert runner.await_args.kwargs["env"] == {"GIT_DISCOVERY_ACROSS_FILESYSTEM": "1"}

    async def test_init_sets_branch(self, runner, tmp_path):
        repo = tmp_path / "shop"
        await GitCliBackend().init(repo, "main")

        assert repo.is_dir()
        assert runner.await_args.args[0][-3:] == ["init", "--quiet", "--initial-branch=main"]

    async def test_commit_allow_empty(self, runner):
        vcs = GitCliBackend()
        await vcs.commit(Path("/backups/shop"), "Initial commit", allow_empty=True)
        assert runner.await_args.args[0][len(GIT_PREFIX):] == [
            "commit", "--allow-empty", "--quiet", "-m", "Initial commit",
        ]

        await vcs.commit(Path("/backups/shop"), "Backup from now")
        assert "--allow-empty" not in runner.await_args.args[0]

    async def test_stage_all_excludes_pathspecs(self, runner):
        await GitCliBackend().stage_all(Path("/backups/shop"), exclude=["*_backup.sql"])

        assert runner.await_args.args[0][len(GIT_PREFIX):] == [
            "add", "--all", "--", ".", ":(exclude)*_backup.sql",
        ]

    @pytest.mark.parametrize("returncode,expected", [(0, False), (1, True)])
    async def test_has_staged_changes(self, runner, returncode, expected):
        runner.return_value = _result(returncode=returncode)

        assert await GitCliBackend().has_staged_changes(Path("/backups/shop")) is expected
        assert runner.await_args.kwargs["check"] is False

    async def test_has_staged_changes_error(self, runner):
        runner.return_value = _result(returncode=128, stderr="fatal: bad index")

        with pytest.raises(CommandError, match="bad index"):
            await GitCliBackend().has_staged_changes(Path("/backups/shop"))

    async def test_log_drops_blank_lines(self, runner):
        runner.return_value = _result(stdout="a\n\nb\n")

        lines = await GitCliBackend().log(Path("/backups/shop"), "%h")

        assert lines == ["a", "b"]
        assert runner.await_args.args[0][-2:] == ["log", "--pretty=format:%h"]

    async def test_rev_parse_strips(self, runner):
        runner.return_value = _result(stdout="a1b2c3d\n")
        assert await GitCliBackend().rev_parse(Path("/r"), "--short", "HEAD") == "a1b2c3d"

    async def test_is_repository_without_metadata_dir(self, runner, tmp_path):
        assert await GitCliBackend().is_repository(tmp_path) is False
        runner.assert_not_awaited()

    async def test_is_repository_checks_git(self, runner, tmp_path):
        (tmp_path / ".git").mkdir()
        runner.return_value = _result(returncode=128)

        assert await GitCliBackend().is_repository(tmp_path) is False

    async def test_has_commits(self, runner):
        runner.return_value = _result(returncode=1)

        assert await GitCliBackend().has_commits(Path("/r")) is False
        assert runner.await_args.args[0][len(GIT_PREFIX):] == [
            "rev-parse", "--verify", "--quiet", "HEAD"
        ]
        assert runner.await_args.kwargs["check"] is False

    async def test_list_deleted(self, runner):
        runner.return_value = _result(stdout="gone.php\nwp-content/old.png\n")

        assert await GitCliBackend().list_deleted(Path("/r")) == [
            "gone.php", "wp-content/old.png"
        ]
        assert runner.await_args.args[0][len(GIT_PREFIX):] == ["ls-files", "--deleted"]

    async def test_checkout_whole_tree(self, runner):
        """Paths missing from the reference are removed, not kept."""
        await GitCliBackend().checkout(Path("/backups/shop"), "a1b2c3d")
        assert runner.await_args.args[0][len(GIT_PREFIX):] == [
            "checkout", "--no-overlay", "a1b2c3d", "--", "."
        ]

    async def test_gc_removes_stale_log(self, runner, tmp_path):
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "gc.log").write_text("warning: too many loose objects")

        await GitCliBackend().gc(tmp_path)

        assert not (tmp_path / ".git" / "gc.log").exists()
        assert runner.await_args.args[0][-3:] == ["gc", "--auto", "--quiet"]


class TestDatabaseBackends:
    """Dump/restore tool invocations."""

    async def test_mysql_export(self, tmp_path):
        out = tmp_path / "shop_backup.sql"
        with patch("site_backup.adapters.mysql.run_command", new=AsyncMock()) as runner:
            await MysqlCliBackend().export("shop", "shop_user", "secret", out)

        runner.assert_awaited_once_with(
            ["mysqldump", "-u", "shop_user", "shop"],
            env={"MYSQL_PWD": "secret"},
            stdout_path=out,
        )

    async def test_mysql_import(self, tmp_path):
        dump = tmp_path / "shop_backup.sql"
        with patch("site_backup.adapters.mysql.run_command", new=AsyncMock()) as runner:
            await MysqlCliBackend().import_("shop", "shop_user", "secret", dump)

        runner.assert_awaited_once_with(
            ["mysql", "-u", "shop_user", "shop"],
            env={"MYSQL_PWD": "secret"},
            stdin_path=dump,
        )

    async def test_password_not_in_arguments(self, tmp_path):
        with patch("site_backup.adapters.postgres.run_command", new=AsyncMock()) as runner:
            await PostgresCliBackend().export("shop", "shop_user", "secret", tmp_path / "d.sql")

        args = runner.await_args.args[0]
        assert "secret" not in " ".join(args)
        assert args[0] == "pg_dump"
        assert runner.await_args.kwargs["env"] == {"PGPASSWORD": "secret"}

    async def test_postgres_import_stops_on_error(self, tmp_path):
        with patch("site_backup.adapters.postgres.run_command", new=AsyncMock()) as runner:
            await PostgresCliBackend().import_("shop", "shop_user", "secret", tmp_path / "d.sql")

        args = runner.await_args.args[0]
        assert args[0] == "psql"
        assert "ON_ERROR_STOP=1" in args

    def test_resolve_binary(self, tmp_path):
        assert resolve_binary(tmp_path, "mysqldump") == str(tmp_path / "mysqldump")
        assert resolve_binary(tmp_path / "missing", "mysqldump") == "mysqldump"
        assert resolve_binary(None, "psql") == "psql"


class TestRunCommand:
    """run_command() against real child processes."""

    async def test_captures_output(self):
        result = await run_command([sys.executable, "-c", "print('hello')"])

        assert result.returncode == 0
        assert result.stdout.strip() == "hello"

    async def test_nonzero_exit_raises(self):
        with pytest.raises(CommandError) as excinfo:
            await run_command(
                [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"]
            )

        assert excinfo.value.returncode == 3
        assert excinfo.value.stderr == "nope"

    async def test_check_false_returns_result(self):
        result = await run_command([sys.executable, "-c", "raise SystemExit(1)"], check=False)
        assert result.returncode == 1

    async def test_missing_program(self):
        with pytest.raises(CommandError) as excinfo:
            await run_command(["definitely-not-a-real-binary-xyz"])
        assert excinfo.value.returncode == 127

    async def test_env_and_file_redirection(self, tmp_path):
        """env is layered over the parent environment; stdin/stdout use files."""
        source = tmp_path / "in.txt"
        source.write_text("payload")
        target = tmp_path / "out.txt"
        script = "import os, sys; sys.stdout.write(os.environ['EXTRA'] + sys.stdin.read())"

        await run_command(
            [sys.executable, "-c", script],
            env={"EXTRA": "x-"},
            stdin_path=source,
            stdout_path=target,
        )

        assert target.read_text() == "x-payload"

    async def test_unopenable_redirect_file(self, tmp_path):
        """A missing input file is a CommandError, not a bare OSError."""
        with pytest.raises(CommandError) as excinfo:
            await run_command(
                [sys.executable, "-c", "pass"], stdin_path=tmp_path / "missing.sql"
            )

        assert excinfo.value.returncode == 126
        assert "cannot open redirect file" in excinfo.value.stderr

    async def test_output_under_regular_file(self, tmp_path):
        blocker = tmp_path / "shop"
        blocker.write_text("not a directory")

        with pytest.raises(CommandError):
            await run_command([sys.executable, "-c", "pass"], stdout_path=blocker / "d.sql")

    async def test_program_not_executable(self, tmp_path):
        script = tmp_path / "tool"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o644)

        with pytest.raises(CommandError) as excinfo:
            await run_command([str(script)])

        assert excinfo.value.returncode == 126
