"""bak-converter: restore SQL Server backups and export them as SQLite or JSON.

Each conversion restores the uploaded ``.bak`` file into a uniquely named
ephemeral database, introspects its tables, exports the rows and then
drops the database and deletes the upload -- on every exit path.

Usage:
    from bak_converter import load_config, convert_backup, ExportFormat
    from bak_converter import TokenAllocator, copy_local_backup

    config = load_config()
    upload = copy_local_backup(Path("northwind.bak"), config, TokenAllocator())
    data = await convert_backup(upload, config, ExportFormat.SQLITE)
"""

__version__ = "0.1.0"

# Adapters
from bak_converter.adapters.base import SqlServerClient
from bak_converter.adapters.mssql import AsyncSqlServerAdapter

# Config
from bak_converter.config.loader import load_config
from bak_converter.config.models import ConverterConfig, ServerProfile

# Errors
from bak_converter.errors import (
    CleanupStepFailed,
    ConnectionTimeout,
    ConverterError,
    ExportFailed,
    MalformedBackupFile,
    RestoreFailed,
    SchemaQueryFailed,
    UploadRejected,
    UploadTooLarge,
)

# Export
from bak_converter.export import ExportFormat, coerce_value, export_to_json, export_to_sqlite, map_column_type

# Factory
from bak_converter.factory import wait_for_server

# Pipeline
from bak_converter.pipeline import CleanupCoordinator, convert_backup, ephemeral_database

# Restore / schema
from bak_converter.restore import EphemeralDatabase, restore_database
from bak_converter.schema import ColumnSchema, SchemaIntrospector, TableSchema

# Upload
from bak_converter.upload import TokenAllocator, UploadedBackupFile, accept_upload, copy_local_backup

__all__ = [
    # Adapters
    "SqlServerClient",
    "AsyncSqlServerAdapter",
    # Config
    "load_config",
    "ConverterConfig",
    "ServerProfile",
    # Errors
    "ConverterError",
    "ConnectionTimeout",
    "RestoreFailed",
    "MalformedBackupFile",
    "SchemaQueryFailed",
    "ExportFailed",
    "CleanupStepFailed",
    "UploadRejected",
    "UploadTooLarge",
    # Export
    "ExportFormat",
    "map_column_type",
    "coerce_value",
    "export_to_sqlite",
    "export_to_json",
    # Factory
    "wait_for_server",
    # Pipeline
    "CleanupCoordinator",
    "convert_backup",
    "ephemeral_database",
    # Restore / schema
    "EphemeralDatabase",
    "restore_database",
    "SchemaIntrospector",
    "TableSchema",
    "ColumnSchema",
    # Upload
    "TokenAllocator",
    "UploadedBackupFile",
    "accept_upload",
    "copy_local_backup",
]
