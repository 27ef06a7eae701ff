"""Database adapters package.

Provides the ``SqlServerClient`` Protocol and the async SQL Server adapter.

Usage:
    from bak_converter.adapters import SqlServerClient, AsyncSqlServerAdapter
"""

from bak_converter.adapters.base import SqlServerClient
from bak_converter.adapters.mssql import AsyncSqlServerAdapter

__all__ = [
    "SqlServerClient",
    "AsyncSqlServerAdapter",
]
