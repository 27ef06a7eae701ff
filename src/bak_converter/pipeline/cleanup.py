"""Guaranteed teardown of per-request resources.

``CleanupCoordinator`` drops the ephemeral database, closes the client and
deletes the uploaded file.  The steps are independent: each one runs even
if an earlier one failed, and no failure escapes ``run()`` -- failures are
logged and returned in a ``CleanupReport``.

Usage:
    cleanup = CleanupCoordinator(upload.path)
    try:
        client = await wait_for_server(config)
        cleanup.attach_client(client)
        cleanup.register_database(upload.database_name)
        ...
    finally:
        report = await cleanup.run()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from bak_converter.adapters.base import SqlServerClient
from bak_converter.errors import CleanupStepFailed
from bak_converter.identifiers import quote_mssql_identifier, validate_database_name

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """Outcome of one cleanup run."""

    completed: list[str] = field(default_factory=list)
    failures: list[CleanupStepFailed] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class CleanupCoordinator:
    """Tears down one request's ephemeral database, client and upload.

    Args:
        backup_path: Uploaded ``.bak`` file to delete.
        force_offline_before_drop: Cycle the database offline/online before
            ``DROP DATABASE`` to terminate lingering sessions.
    """

    def __init__(self, backup_path: str | Path, *, force_offline_before_drop: bool = True) -> None:
        self.backup_path = Path(backup_path)
        self.force_offline_before_drop = force_offline_before_drop
        self.client: SqlServerClient | None = None
        self.database_name: str | None = None
        self._report: CleanupReport | None = None

    def attach_client(self, client: SqlServerClient) -> None:
        """Register the client to close (and to drop the database with)."""
        self.client = client

    def register_database(self, name: str) -> None:
        """Register the ephemeral database to drop.

        Register before the restore starts: a failed restore can leave a
        half-created database behind.
        """
        self.database_name = name

    @property
    def has_run(self) -> bool:
        return self._report is not None

    async def run(self) -> CleanupReport:
        """Run every cleanup step once.

        A second call returns the first run's report without repeating
        any step.
        """
        if self._report is not None:
            logger.debug("Cleanup already ran for %s", self.backup_path)
            return self._report

        report = CleanupReport()
        self._report = report

        if self.client is not None and self.database_name is not None:
            await self._step(report, "drop_database", self._drop_database)
        if self.client is not None:
            await self._step(report, "close_client", self.client.close)
        await self._step(report, "delete_upload", self._delete_upload)

        return report

    async def _step(self, report: CleanupReport, name: str, action) -> None:
        try:
            await action()
        except Exception as exc:
            failure = CleanupStepFailed(name, exc)
            logger.error("%s", failure, exc_info=True)
            report.failures.append(failure)
        else:
            report.completed.append(name)

    async def _drop_database(self) -> None:
        name = validate_database_name(self.database_name)
        quoted = quote_mssql_identifier(name)
        guard = "IF DB_ID(:name) IS NOT NULL"

        await self.client.use_database("master")
        if self.force_offline_before_drop:
            # A database left RESTORING rejects ALTER DATABASE but can still be dropped
            try:
                await self.client.execute(
                    f"{guard} ALTER DATABASE {quoted} SET OFFLINE WITH ROLLBACK IMMEDIATE",
                    {"name": name},
                )
                await self.client.execute(f"{guard} ALTER DATABASE {quoted} SET ONLINE", {"name": name})
            except Exception:
                logger.warning("Could not cycle %s offline before drop", name, exc_info=True)
        await self.client.execute(f"{guard} DROP DATABASE {quoted}", {"name": name})
        logger.info("Temporary database %s dropped", name)

    async def _delete_upload(self) -> None:
        try:
            await asyncio.to_thread(self.backup_path.unlink)
        except FileNotFoundError:
            logger.debug("Upload %s already removed", self.backup_path)
            return
        logger.info("Upload %s deleted", self.backup_path)
