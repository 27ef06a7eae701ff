"""Models for ``RESTORE FILELISTONLY`` output.

Usage:
    from bak_converter.restore.models import BackupFileEntry, BackupFileList

    files = BackupFileList.from_rows(rows)
    files.data_file.logical_name
"""

from pydantic import BaseModel, Field

from bak_converter.errors import MalformedBackupFile


class BackupFileEntry(BaseModel):
    """One database file recorded inside a backup set."""

    logical_name: str
    physical_name: str = ""
    file_type: str          # D = data, L = log, S = filestream, F = full-text


class BackupFileList(BaseModel):
    """Database files recorded in the first backup set of a ``.bak`` file."""

    entries: list[BackupFileEntry] = Field(default_factory=list)

    @classmethod
    def from_rows(cls, rows: list[dict]) -> "BackupFileList":
        """Build from raw ``RESTORE FILELISTONLY`` rows.

        Raises:
            MalformedBackupFile: If a row lacks ``LogicalName`` or ``Type``.
        """
        entries: list[BackupFileEntry] = []
        for row in rows:
            logical_name = row.get("LogicalName")
            file_type = row.get("Type")
            if not logical_name or not file_type:
                raise MalformedBackupFile(
                    f"Backup file list row missing LogicalName/Type: {sorted(row)}"
                )
            entries.append(
                BackupFileEntry(
                    logical_name=logical_name,
                    physical_name=row.get("PhysicalName") or "",
                    file_type=str(file_type).strip().upper(),
                )
            )
        return cls(entries=entries)

    def _first_of_type(self, file_type: str) -> BackupFileEntry:
        for entry in self.entries:
            if entry.file_type == file_type:
                return entry
        raise MalformedBackupFile(
            f"Backup file list has no entry of type '{file_type}' "
            f"(found: {[e.file_type for e in self.entries]})"
        )

    @property
    def data_file(self) -> BackupFileEntry:
        """First data (``D``) file."""
        return self._first_of_type("D")

    @property
    def log_file(self) -> BackupFileEntry:
        """First log (``L``) file."""
        return self._first_of_type("L")

    def require_data_and_log(self) -> None:
        """Raise ``MalformedBackupFile`` unless a data and a log entry exist."""
        self._first_of_type("D")
        self._first_of_type("L")


class EphemeralDatabase(BaseModel):
    """A database restored for a single request and dropped at its end."""

    name: str
    backup_path: str
