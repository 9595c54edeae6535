"""Database dump and restore with bounded retries.

Usage:
    from site_backup.database import DatabaseAdapter
"""

from site_backup.database.dump_restore import DatabaseAdapter

__all__ = ["DatabaseAdapter"]
