"""End-to-end conversion of one uploaded backup.

``ephemeral_database()`` is the single place that guarantees teardown: the
cleanup coordinator is created before anything else and runs in the
context manager's ``finally`` on every exit path.

Usage:
    from bak_converter.pipeline.controller import convert_backup

    artifact = await convert_backup(upload, config, ExportFormat.SQLITE)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from bak_converter.adapters.base import SqlServerClient
from bak_converter.config.models import ConverterConfig
from bak_converter.export.json_export import export_to_json
from bak_converter.export.sqlite import export_to_sqlite
from bak_converter.export.types import ExportFormat
from bak_converter.factory import AdapterFactory, wait_for_server
from bak_converter.pipeline.cleanup import CleanupCoordinator
from bak_converter.restore.models import EphemeralDatabase
from bak_converter.restore.orchestrator import restore_database
from bak_converter.schema.introspector import SchemaIntrospector
from bak_converter.upload import UploadedBackupFile

logger = logging.getLogger(__name__)


@asynccontextmanager
async def ephemeral_database(
    upload: UploadedBackupFile,
    config: ConverterConfig,
    *,
    adapter_factory: AdapterFactory | None = None,
) -> AsyncIterator[tuple[SqlServerClient, EphemeralDatabase]]:
    """Restore *upload* into its ephemeral database for the duration of a block.

    Yields:
        ``(client, database)`` with the client switched to the restored
        database.

    On exit -- normal, exception or cancellation -- the database is dropped,
    the client closed and the uploaded file deleted.
    """
    cleanup = CleanupCoordinator(
        upload.path,
        force_offline_before_drop=config.force_offline_before_drop,
    )
    try:
        client = await wait_for_server(config, adapter_factory=adapter_factory)
        cleanup.attach_client(client)
        cleanup.register_database(upload.database_name)
        database = await restore_database(
            client, upload.path, upload.database_name, config.data_dir
        )
        yield client, database
    finally:
        report = await cleanup.run()
        if not report.ok:
            logger.error(
                "Cleanup for %s incomplete: %s",
                upload.database_name,
                ", ".join(f.step for f in report.failures),
            )


async def convert_backup(
    upload: UploadedBackupFile,
    config: ConverterConfig,
    export_format: ExportFormat,
    *,
    adapter_factory: AdapterFactory | None = None,
) -> bytes | dict[str, list[dict[str, Any]]]:
    """Restore, introspect and export *upload*, then clean up.

    Args:
        upload: Accepted upload.
        config: Converter configuration.
        export_format: ``ExportFormat.SQLITE`` (returns ``bytes``) or
            ``ExportFormat.JSON`` (returns a mapping).
        adapter_factory: Optional client factory (tests).

    Raises:
        ConnectionTimeout, RestoreFailed, MalformedBackupFile,
        SchemaQueryFailed, ExportFailed: The first fatal error; cleanup has
            already run when it propagates.
    """
    logger.info("Exporting %s to %s", upload.database_name, export_format.value)
    async with ephemeral_database(upload, config, adapter_factory=adapter_factory) as (client, _):
        introspector = SchemaIntrospector(client)
        if export_format is ExportFormat.SQLITE:
            return await export_to_sqlite(client, introspector)
        return await export_to_json(
            client,
            introspector,
            max_string_length=config.json_max_string_length,
        )
