"""Schema catalog queries: table discovery and identifier quoting."""

import sqlite3
from typing import Optional, Union

# sqlite_master is the long-standing alias of sqlite_schema and exists on
# every SQLite version the stdlib module may be linked against.
_TABLES_SQL = """
    SELECT name FROM sqlite_master
     WHERE type = 'table'
       AND sql NOT LIKE 'CREATE VIRTUAL%'
       AND name NOT LIKE 'sqlite_%'{like}
     ORDER BY name COLLATE nocase, name
"""

_SCHEMA_SQL = """
    SELECT type, name, tbl_name, sql FROM sqlite_master{like}
     ORDER BY name COLLATE nocase
"""


def tables_query(pattern: Optional[str]) -> tuple[str, tuple]:
    """Return (sql, params) listing the content-hashed tables."""
    if pattern is None:
        return _TABLES_SQL.format(like=""), ()
    return _TABLES_SQL.format(like="\n       AND name LIKE ?"), (pattern,)


def schema_query(pattern: Optional[str]) -> tuple[str, tuple]:
    """Return (sql, params) selecting every catalog row owned by a matching table."""
    if pattern is None:
        return _SCHEMA_SQL.format(like=""), ()
    return _SCHEMA_SQL.format(like="\n     WHERE tbl_name LIKE ?"), (pattern,)


def quote_identifier(name: str) -> str:
    """Quote *name* as a SQL identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def _as_str(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def select_tables(conn: sqlite3.Connection, pattern: Optional[str] = None) -> list[str]:
    """Return names of ordinary, non-internal tables whose name is LIKE *pattern*.

    Virtual tables and ``sqlite_*`` internal tables are excluded. Names are
    ordered case-insensitively (ASCII folding), ties broken by codepoint.

    Raises:
        sqlite3.Error: If the catalog query fails.
        UnicodeDecodeError: If a stored table name is not valid UTF-8.
    """
    sql, params = tables_query(pattern)
    return [_as_str(row[0]) for row in conn.execute(sql, params)]
