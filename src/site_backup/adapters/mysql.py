"""MySQL implementation of ``DatabaseBackend`` using ``mysqldump`` and ``mysql``.

Usage:
    from site_backup.adapters.mysql import MysqlCliBackend

    db = MysqlCliBackend(bin_path="/usr/local/mysql/bin")
    await db.export("shop", "shop_user", "secret", Path("backups/shop/shop_backup.sql"))
"""

from pathlib import Path

from site_backup.adapters.process import run_command


def resolve_binary(bin_path: str | Path | None, name: str) -> str:
    """Return ``bin_path/name`` when ``bin_path`` is an existing directory, else ``name``.

    Example:
        >>> resolve_binary(None, "mysqldump")
        'mysqldump'
    """
    if bin_path and Path(bin_path).is_dir():
        return str(Path(bin_path) / name)
    return name


class MysqlCliBackend:
    """``DatabaseBackend`` for MySQL/MariaDB.

    The credential is handed to the client tools through ``MYSQL_PWD`` so
    it never appears in the process list.

    Args:
        bin_path: Optional directory holding ``mysqldump`` and ``mysql``.
            Falls back to the binaries on ``PATH``.
    """

    def __init__(self, bin_path: str | Path | None = None):
        self.mysqldump = resolve_binary(bin_path, "mysqldump")
        self.mysql = resolve_binary(bin_path, "mysql")

    async def export(
        self,
        db_name: str,
        user: str,
        credential: str,
        output_path: Path,
    ) -> None:
        await run_command(
            [self.mysqldump, "-u", user, db_name],
            env={"MYSQL_PWD": credential},
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
            [self.mysql, "-u", user, db_name],
            env={"MYSQL_PWD": credential},
            stdin_path=input_path,
        )
