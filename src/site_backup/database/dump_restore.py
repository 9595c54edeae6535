"""Database dump and restore around a ``DatabaseBackend``.

Dumps are retried; a dump that never succeeds leaves no file behind.
Restores are single-shot and never retried.

Usage:
    from site_backup.database.dump_restore import DatabaseAdapter

    adapter = DatabaseAdapter(MysqlCliBackend())
    await adapter.dump("shop", "shop_user", "secret", Path("backups/shop/shop_backup.sql"))
    await adapter.restore("shop", "shop_user", "secret", Path("backups/shop/shop_backup.sql"))
"""

import logging
from pathlib import Path

from site_backup.adapters.base import DatabaseBackend
from site_backup.adapters.process import CommandError
from site_backup.errors import DumpError, RestoreDatabaseError
from site_backup.retry import DUMP_POLICY, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    """Export and import one database through a backend.

    Args:
        backend: Database backend running the export/import tools.
        dump_policy: Retry policy for exports.
    """

    def __init__(self, backend: DatabaseBackend, dump_policy: RetryPolicy = DUMP_POLICY):
        self.backend = backend
        self.dump_policy = dump_policy

    async def dump(
        self,
        db_name: str,
        user: str,
        credential: str,
        output_path: Path,
    ) -> Path:
        """Export ``db_name`` to ``output_path``, overwriting any previous dump.

        Returns:
            ``output_path``.

        Raises:
            DumpError: If the dump directory cannot be created, or after
                ``dump_policy.max_attempts`` failed exports.  The partial
                output file has been deleted.
        """
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DumpError(f"Cannot create dump directory {output_path.parent}: {e}") from e

        logger.info(f"Starting database dump of {db_name}")

        try:
            await call_with_retry(
                self.dump_policy,
                self.backend.export,
                db_name,
                user,
                credential,
                output_path,
                description=f"Database dump of {db_name}",
            )
        except CommandError as e:
            output_path.unlink(missing_ok=True)
            logger.error(
                f"Database dump of {db_name} failed after "
                f"{self.dump_policy.max_attempts} attempts"
            )
            raise DumpError(
                f"Database dump of {db_name} failed after "
                f"{self.dump_policy.max_attempts} attempts: {e}"
            ) from e

        logger.info(f"Database dump of {db_name} completed")
        return output_path

    async def restore(
        self,
        db_name: str,
        user: str,
        credential: str,
        input_path: Path,
    ) -> None:
        """Import the dump at ``input_path`` into ``db_name``.  Not retried.

        Raises:
            RestoreDatabaseError: If the dump file is missing or the import fails.
        """
        if not input_path.is_file():
            raise RestoreDatabaseError(f"Database backup file not found: {input_path}")

        logger.info(f"Restoring database {db_name} from {input_path}")
        try:
            await self.backend.import_(db_name, user, credential, input_path)
        except CommandError as e:
            raise RestoreDatabaseError(f"Database restore of {db_name} failed: {e}") from e

        logger.info(f"Database restore of {db_name} completed")
