"""Request pipeline: restore, export and guaranteed cleanup.

Usage:
    from bak_converter.pipeline import convert_backup, ephemeral_database
"""

from bak_converter.pipeline.cleanup import CleanupCoordinator, CleanupReport
from bak_converter.pipeline.controller import convert_backup, ephemeral_database

__all__ = [
    "CleanupCoordinator",
    "CleanupReport",
    "convert_backup",
    "ephemeral_database",
]
