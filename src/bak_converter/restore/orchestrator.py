"""Restore an uploaded ``.bak`` file into an ephemeral database.

The restore is driven entirely by the file list stored in the backup:
every data and log file is relocated into the configured data directory
under names derived from the ephemeral database name, so concurrent
restores never collide on disk.

Usage:
    from bak_converter.restore.orchestrator import restore_database

    database = await restore_database(
        client,
        "/srv/uploads/1718000000000.bak",
        "DB_1718000000000",
        data_dir="/var/opt/mssql/data",
    )
    # client now runs against DB_1718000000000
"""

import logging
from pathlib import Path

from bak_converter.adapters.base import SqlServerClient
from bak_converter.errors import ConverterError, RestoreFailed
from bak_converter.identifiers import quote_mssql_identifier, validate_database_name
from bak_converter.restore.models import BackupFileEntry, BackupFileList, EphemeralDatabase

logger = logging.getLogger(__name__)


async def read_file_list(client: SqlServerClient, backup_path: str | Path) -> BackupFileList:
    """Read the logical file names stored in a backup file.

    Args:
        client: Connected client (any database context).
        backup_path: Path of the ``.bak`` file as seen by SQL Server.

    Returns:
        ``BackupFileList`` with at least one data and one log entry.

    Raises:
        MalformedBackupFile: If the data or log entry cannot be identified.
        RestoreFailed: If ``RESTORE FILELISTONLY`` itself fails.
    """
    try:
        rows = await client.fetch_all(
            "RESTORE FILELISTONLY FROM DISK = :path",
            {"path": str(backup_path)},
        )
    except Exception as exc:
        raise RestoreFailed(f"Could not read file list of {backup_path}: {exc}") from exc

    file_list = BackupFileList.from_rows(rows)
    file_list.require_data_and_log()
    return file_list


def _relocation_targets(
    file_list: BackupFileList,
    database_name: str,
    data_dir: str,
) -> list[tuple[BackupFileEntry, str]]:
    """Map every backup file to its path under *data_dir*.

    The first data file becomes ``<name>.mdf`` and the first log file
    ``<name>_log.ldf``; any further files get a numeric suffix.
    """
    targets: list[tuple[BackupFileEntry, str]] = []
    data_index = 0
    log_index = 0
    for entry in file_list.entries:
        if entry.file_type == "L":
            suffix = "_log.ldf" if log_index == 0 else f"_log{log_index}.ldf"
            log_index += 1
        else:
            suffix = ".mdf" if data_index == 0 else f"_{data_index}.ndf"
            data_index += 1
        targets.append((entry, f"{data_dir}/{database_name}{suffix}"))
    return targets


async def restore_database(
    client: SqlServerClient,
    backup_path: str | Path,
    database_name: str,
    data_dir: str,
) -> EphemeralDatabase:
    """Restore the first backup set of *backup_path* as *database_name*.

    Steps:

    1. ``RESTORE FILELISTONLY`` to discover logical file names.
    2. ``RESTORE DATABASE ... WITH FILE = 1, MOVE ..., REPLACE``.
    3. ``USE`` the restored database on the client's pinned connection.

    Args:
        client: Connected client.
        backup_path: Absolute path of the ``.bak`` file.
        database_name: Generated ephemeral database name.
        data_dir: Server-side directory for the restored data/log files.

    Returns:
        ``EphemeralDatabase`` describing the restored database.

    Raises:
        MalformedBackupFile: If the backup has no data or log entry.
        RestoreFailed: For any other failure, with the cause chained.
    """
    backup_path = str(backup_path)
    try:
        validate_database_name(database_name)
    except ValueError as exc:
        raise RestoreFailed(str(exc)) from exc

    logger.info("Restoring %s into %s", backup_path, database_name)

    file_list = await read_file_list(client, backup_path)
    targets = _relocation_targets(file_list, database_name, data_dir)

    moves = ", ".join("MOVE ? TO ?" for _ in targets)
    statement = (
        f"RESTORE DATABASE {quote_mssql_identifier(database_name)} "
        f"FROM DISK = ? WITH FILE = 1, {moves}, REPLACE"
    )
    params: list[str] = [backup_path]
    for entry, target in targets:
        params.extend([entry.logical_name, target])

    try:
        await client.execute_batch(statement, params)
        await client.use_database(database_name)
    except ConverterError:
        raise
    except Exception as exc:
        raise RestoreFailed(f"Restore of {database_name} failed: {exc}") from exc

    logger.info("Database %s restored", database_name)
    return EphemeralDatabase(name=database_name, backup_path=backup_path)
