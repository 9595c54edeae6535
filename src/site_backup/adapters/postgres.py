"""PostgreSQL implementation of ``DatabaseBackend`` using ``pg_dump`` and ``psql``.

Usage:
    from site_backup.adapters.postgres import PostgresCliBackend

    db = PostgresCliBackend()
    await db.import_("shop", "shop_user", "secret", Path("backups/shop/shop_backup.sql"))
"""

from pathlib import Path

from site_backup.adapters.mysql import resolve_binary
from site_backup.adapters.process import run_command


class PostgresCliBackend:
    """``DatabaseBackend`` for PostgreSQL.

    Exports are plain SQL (``pg_dump --clean --if-exists``) so that replaying
    one with ``psql`` replaces the existing objects.  The credential is
    passed through ``PGPASSWORD``; host and port come from the usual
    ``PGHOST``/``PGPORT`` environment.

    Args:
        bin_path: Optional directory holding ``pg_dump`` and ``psql``.
    """

    def __init__(self, bin_path: str | Path | None = None):
        self.pg_dump = resolve_binary(bin_path, "pg_dump")
        self.psql = resolve_binary(bin_path, "psql")

    async def export(
        self,
        db_name: str,
        user: str,
        credential: str,
        output_path: Path,
    ) -> None:
        await run_command(
            [
                self.pg_dump,
                "--username",
                user,
                "--no-password",
                "--clean",
                "--if-exists",
                "--dbname",
                db_name,
            ],
            env={"PGPASSWORD": credential},
            stdout_path=output_path,
        )

    async def import_(
        self,
        db_name: str,
        user: str,
        credential: str,
        input_path: Path,
    ) -> None:
        await run_command(
            [
                self.psql,
                "--username",
                user,
                "--no-password",
                "--quiet",
                "--set",
                "ON_ERROR_STOP=1",
                "--dbname",
                db_name,
            ],
            env={"PGPASSWORD": credential},
            stdin_path=input_path,
        )
