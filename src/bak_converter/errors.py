"""Error taxonomy for the restore-introspect-convert-cleanup pipeline.

Every failure is tagged at the point where it is produced.  Callers match
on the exception class (or its ``stage`` attribute) and never re-infer the
kind of failure from a driver error's shape.

Usage:
    from bak_converter.errors import ConverterError, RestoreFailed

    try:
        artifact = await convert_backup(upload, config, ExportFormat.JSON)
    except ConverterError as exc:
        print(exc.stage, exc)
"""


class ConverterError(Exception):
    """Base class for every pipeline failure."""

    stage: str = "pipeline"


class ConnectionTimeout(ConverterError):
    """SQL Server did not become reachable within the connect deadline."""

    stage = "connect"


class RestoreFailed(ConverterError):
    """The backup file could not be restored into the ephemeral database."""

    stage = "restore"


class MalformedBackupFile(RestoreFailed):
    """The backup file list has no identifiable data or log entry."""


class SchemaQueryFailed(ConverterError):
    """An ``INFORMATION_SCHEMA`` metadata query failed."""

    stage = "schema"


class ExportFailed(ConverterError):
    """Table creation, row fetch or row insertion failed during export."""

    stage = "export"


class CleanupStepFailed(ConverterError):
    """One cleanup step failed.

    Never raised out of the cleanup coordinator -- collected into its
    report and logged instead.
    """

    stage = "cleanup"

    def __init__(self, step: str, cause: BaseException) -> None:
        super().__init__(f"Cleanup step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause


class UploadRejected(ConverterError):
    """The uploaded file is missing or is not a ``.bak`` file."""

    stage = "upload"


class UploadTooLarge(UploadRejected):
    """The uploaded file exceeds the configured size limit."""
