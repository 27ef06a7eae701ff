"""Shared fakes for pipeline tests.

``FakeServer`` models the state of one SQL Server instance (which databases
exist, which tables a restored backup contains).  ``FakeClient`` implements
the ``SqlServerClient`` protocol against it and records every statement.
"""

import re
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from bak_converter.config.models import ConverterConfig


_BRACKETED = re.compile(r"\[((?:[^\]]|\]\])+)\]")


def _first_identifier(sql: str) -> str:
    match = _BRACKETED.search(sql)
    assert match, f"no bracketed identifier in {sql!r}"
    return match.group(1).replace("]]", "]")


def column_row(name: str, data_type: str, nullable: bool = True, max_length: int | None = None) -> dict:
    """INFORMATION_SCHEMA.COLUMNS row."""
    return {
        "COLUMN_NAME": name,
        "DATA_TYPE": data_type,
        "CHARACTER_MAXIMUM_LENGTH": max_length,
        "NUMERIC_PRECISION": None,
        "NUMERIC_SCALE": None,
        "IS_NULLABLE": "YES" if nullable else "NO",
    }


DEFAULT_FILE_LIST = [
    {"LogicalName": "Northwind", "PhysicalName": "C:\\data\\Northwind.mdf", "Type": "D"},
    {"LogicalName": "Northwind_log", "PhysicalName": "C:\\data\\Northwind_log.ldf", "Type": "L"},
]


class FakeServer:
    """In-memory stand-in for one SQL Server instance."""

    def __init__(
        self,
        tables: dict[str, dict] | None = None,
        file_list: list[dict] | None = None,
    ) -> None:
        # table name -> {"schema": str, "columns": [column_row...], "rows": [dict...]}
        self.tables = tables or {}
        self.file_list = DEFAULT_FILE_LIST if file_list is None else file_list
        self.databases: set[str] = {"master"}
        self.clients: list["FakeClient"] = []


class FakeClient:
    """``SqlServerClient`` backed by a ``FakeServer``.

    Args:
        server: Shared server state.
        fail_on: Map of statement substring -> exception raised when a
            statement containing that substring runs.
    """

    def __init__(self, server: FakeServer, fail_on: dict[str, BaseException] | None = None) -> None:
        self.server = server
        self.fail_on = fail_on or {}
        self.statements: list[str] = []
        self.database = "master"
        self.closed = False
        self.open_streams = 0
        server.clients.append(self)

    def _record(self, sql: str) -> None:
        self.statements.append(sql)
        for fragment, exc in self.fail_on.items():
            if fragment in sql:
                raise exc

    async def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        self._record(sql)
        params = params or {}
        if "RESTORE FILELISTONLY" in sql:
            return list(self.server.file_list)
        if "INFORMATION_SCHEMA.TABLES" in sql:
            assert self.database in self.server.databases
            return [
                {"TABLE_SCHEMA": entry.get("schema", "dbo"), "TABLE_NAME": name}
                for name, entry in sorted(self.server.tables.items())
            ]
        if "INFORMATION_SCHEMA.COLUMNS" in sql:
            return list(self.server.tables[params["table"]]["columns"])
        raise AssertionError(f"unexpected query: {sql}")

    async def stream_rows(
        self,
        table: str,
        columns: Sequence[str],
        schema: str = "dbo",
    ) -> AsyncIterator[dict]:
        self._record(f"SELECT {', '.join(columns)} FROM [{schema}].[{table}]")
        self.open_streams += 1
        try:
            for row in self.server.tables[table]["rows"]:
                yield {name: row.get(name) for name in columns}
        finally:
            self.open_streams -= 1

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        self._record(sql)
        if sql.startswith("USE "):
            name = _first_identifier(sql)
            assert name in self.server.databases, f"database {name} does not exist"
            self.database = name
        elif "DROP DATABASE" in sql:
            name = _first_identifier(sql)
            assert self.database != name, "cannot drop the database in use"
            self.server.databases.discard(name)

    async def execute_batch(self, sql: str, params: Sequence[Any] = ()) -> None:
        self._record(sql)
        if sql.startswith("RESTORE DATABASE"):
            self.server.databases.add(_first_identifier(sql))

    async def use_database(self, name: str) -> None:
        await self.execute(f"USE [{name}]")

    async def test_connection(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config(tmp_path) -> ConverterConfig:
    return ConverterConfig(
        upload_dir=str(tmp_path / "uploads"),
        data_dir="/var/opt/mssql/data",
        connect_timeout=5,
        retry_interval=0.01,
    )


@pytest.fixture
def sample_tables() -> dict[str, dict]:
    """One table ``t (id INT NOT NULL, name NVARCHAR, note NVARCHAR)``."""
    return {
        "t": {
            "columns": [
                column_row("id", "int", nullable=False),
                column_row("name", "nvarchar", max_length=50),
                column_row("note", "nvarchar", max_length=-1),
            ],
            "rows": [
                {"id": 1, "name": "Ana", "note": "short"},
                {"id": 2, "name": None, "note": "x" * 1600},
            ],
        }
    }
