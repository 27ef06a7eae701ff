"""Identifier validation and quoting.

Generated database names are checked against an allow-list before they
reach any administrative statement.  Introspected table and column names
are always quoted (never validated) because a restored backup may contain
arbitrary names.

Usage:
    >>> validate_database_name("DB_1718000000000")
    'DB_1718000000000'
    >>> quote_mssql_identifier("odd]name")
    '[odd]]name]'
    >>> quote_sqlite_identifier('a"b')
    '"a""b"'
"""

import re

SAFE_DATABASE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,127}$")


def validate_database_name(name: str) -> str:
    """Return *name* unchanged if it is a safe generated database name.

    Raises:
        ValueError: If *name* contains anything besides ASCII letters,
            digits and underscores, starts with a digit, or is longer than
            128 characters.
    """
    if not isinstance(name, str) or not SAFE_DATABASE_NAME.match(name):
        raise ValueError(f"Unsafe database name: {name!r}")
    return name


def quote_mssql_identifier(name: str) -> str:
    """Bracket-quote a SQL Server identifier (``]`` is doubled)."""
    return "[" + name.replace("]", "]]") + "]"


def quote_sqlite_identifier(name: str) -> str:
    """Double-quote a SQLite identifier (``"`` is doubled)."""
    return '"' + name.replace('"', '""') + '"'
