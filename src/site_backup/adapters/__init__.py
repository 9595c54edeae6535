"""Backend adapters package.

Provides the ``VersionControlBackend`` and ``DatabaseBackend`` Protocols
and their command-line implementations for git, MySQL and PostgreSQL.

Usage:
    from site_backup.adapters import GitCliBackend, MysqlCliBackend
    from site_backup.adapters import VersionControlBackend, DatabaseBackend
"""

from site_backup.adapters.base import DatabaseBackend, VersionControlBackend
from site_backup.adapters.git import GitCliBackend
from site_backup.adapters.mysql import MysqlCliBackend
from site_backup.adapters.postgres import PostgresCliBackend
from site_backup.adapters.process import CommandError, CommandResult, run_command

__all__ = [
    "VersionControlBackend",
    "DatabaseBackend",
    "GitCliBackend",
    "MysqlCliBackend",
    "PostgresCliBackend",
    "CommandError",
    "CommandResult",
    "run_command",
]
