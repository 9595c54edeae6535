"""Append-only, human-readable record of backup and restore runs.

Each run opens a section with a separator, the run kind and its start
timestamp.  Every step outcome is one ``- `` line; failures carry an
``*ERROR*`` marker so they can be found with a plain text search.

Usage:
    from site_backup.runlog import RunLog

    run_log = RunLog(Path("backup_log.md"))
    run_log.start("Backup")
    run_log.entry("Database backup completed for shop")
    run_log.error("File backup failed for shop: commit retries exhausted")
"""

import logging
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

SEPARATOR = "--------------------------------"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class RunLog:
    """Run log writer.

    Entries are appended to ``path`` (when set) and forwarded to the
    ``site_backup.runlog`` logger.  ``errors`` keeps this run's error
    entries for the caller's summary.

    Args:
        path: Log file to append to.  ``None`` keeps the log in memory only.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        self.errors: list[str] = []
        self.entries: list[str] = []

    def _append(self, lines: list[str]) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{line}\n")

    def start(self, kind: str, **details: str) -> None:
        """Open a new run section.

        Args:
            kind: Run kind, e.g. ``"Backup"`` or ``"Restore"``.
            **details: Extra ``Key: value`` lines written under the header.
        """
        started = datetime.now().strftime(TIMESTAMP_FORMAT)
        lines = ["", "", SEPARATOR, "", f"**{kind} started:**", started]
        lines += [f"{key.replace('_', ' ').capitalize()}: {value}" for key, value in details.items()]
        lines.append("")
        self._append(lines)
        logger.info(f"{kind} started {started}")

    def section(self, title: str) -> None:
        """Start a per-site subsection."""
        self._append(["", f"### {title}"])
        logger.info(title)

    def entry(self, message: str) -> None:
        """Record a successful or informational step outcome."""
        self.entries.append(message)
        self._append([f"- {message}"])
        logger.info(message)

    def error(self, message: str) -> None:
        """Record a failed step outcome."""
        self.errors.append(message)
        self._append([f"- *ERROR*: {message}"])
        logger.error(message)
