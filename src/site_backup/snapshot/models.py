"""Pydantic models for snapshot history and staging outcomes."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class CommitOutcome(str, Enum):
    """Result of ``StagedChangeCommitter.commit_if_changed()``."""

    NOOP = "noop"  # staged tree identical to the last commit
    COMMITTED = "committed"


class CommitInfo(BaseModel):
    """One commit in a snapshot repository's history.

    Example:
        >>> info.format_line()
        'a1b2c3d - Backup from 2026-01-15 03:00:00 (2 days ago)'
    """

    id: str
    short_id: str
    timestamp: datetime
    message: str
    relative_age: str = ""

    def format_line(self) -> str:
        """Format as ``abbreviated-id - subject (relative-age)``."""
        return f"{self.short_id} - {self.message} ({self.relative_age})"


class StagingResult(BaseModel):
    """Result of ``StagedChangeCommitter.stage_all()``.

    ``mode`` is ``"bulk"`` when the single staging operation succeeded and
    ``"batch"`` when the per-file fallback ran.  ``failed_files`` lists
    paths that never staged during the fallback.
    """

    mode: str = "bulk"
    total_files: int = 0
    failed_files: list[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        """``True`` when every file was staged."""
        return not self.failed_files
