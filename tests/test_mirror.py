"""Tests for MirrorStager and the exclusion list."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from site_backup.adapters.process import CommandError
from site_backup.errors import StagingError
from site_backup.snapshot.mirror import MirrorStager, build_exclude_patterns


class TestBuildExcludePatterns:
    """Mandatory patterns are always present."""

    def test_mandatory_patterns_first(self):
        assert build_exclude_patterns(["*.log"]) == [".git", "*_backup.sql", "*.log"]

    def test_empty_configuration(self):
        assert build_exclude_patterns([]) == [".git", "*_backup.sql"]
        assert build_exclude_patterns(None) == [".git", "*_backup.sql"]

    def test_duplicates_dropped(self):
        patterns = build_exclude_patterns(["*.log", ".git", "*_backup.sql", "*.log"])
        assert patterns == [".git", "*_backup.sql", "*.log"]


class TestBuildCommand:
    """rsync argument list."""

    def test_copy_mode(self):
        cmd = MirrorStager().build_command(
            Path("/srv/shop"), Path("/backups/shop"), [".git", "*.log"], delete_extraneous=False
        )
        assert cmd == [
            "rsync", "-a", "--exclude=.git", "--exclude=*.log", "/srv/shop/", "/backups/shop/",
        ]

    def test_delete_mode(self):
        cmd = MirrorStager().build_command(
            Path("/backups/shop"), Path("/srv/shop"), [], delete_extraneous=True
        )
        assert cmd == ["rsync", "-a", "--delete", "/backups/shop/", "/srv/shop/"]

    def test_never_deletes_excluded(self):
        cmd = MirrorStager().build_command(Path("/a"), Path("/b"), [".git"], True)
        assert "--delete-excluded" not in cmd


class TestMirror:
    """mirror() error handling."""

    async def test_missing_source(self, tmp_path):
        with pytest.raises(StagingError, match="Source directory not found"):
            await MirrorStager().mirror(tmp_path / "nope", tmp_path / "dst", [], False)

    async def test_creates_destination(self, tmp_path):
        (tmp_path / "src").mkdir()
        with patch("site_backup.snapshot.mirror.run_command", new=AsyncMock()) as runner:
            await MirrorStager().mirror(tmp_path / "src", tmp_path / "dst", [".git"], False)

        assert (tmp_path / "dst").is_dir()
        runner.assert_awaited_once()

    async def test_rsync_failure_wrapped(self, tmp_path):
        """rsync failures become StagingError and are not retried."""
        (tmp_path / "src").mkdir()
        error = CommandError(["rsync", "-a"], 23, "some files could not be transferred")
        with patch(
            "site_backup.snapshot.mirror.run_command", new=AsyncMock(side_effect=error)
        ) as runner:
            with pytest.raises(StagingError, match="could not be transferred"):
                await MirrorStager().mirror(tmp_path / "src", tmp_path / "dst", [], False)

        assert runner.await_count == 1

    async def test_destination_blocked_by_file(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "dst").write_text("not a directory")

        with patch("site_backup.snapshot.mirror.run_command", new=AsyncMock()) as runner:
            with pytest.raises(StagingError, match="Cannot create destination"):
                await MirrorStager().mirror(tmp_path / "src", tmp_path / "dst", [], False)

        runner.assert_not_awaited()
