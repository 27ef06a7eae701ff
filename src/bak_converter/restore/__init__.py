"""Restore of uploaded ``.bak`` files into ephemeral databases.

Usage:
    from bak_converter.restore import restore_database, read_file_list
    from bak_converter.restore import BackupFileList, EphemeralDatabase
"""

from bak_converter.restore.models import BackupFileEntry, BackupFileList, EphemeralDatabase
from bak_converter.restore.orchestrator import read_file_list, restore_database

__all__ = [
    "BackupFileEntry",
    "BackupFileList",
    "EphemeralDatabase",
    "read_file_list",
    "restore_database",
]
