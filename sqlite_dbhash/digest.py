"""Digest computation: content and schema hashing over one shared SHA-1 accumulator."""

import hashlib
import logging
import sqlite3
from contextlib import closing, contextmanager
from typing import Any, Iterator, Optional

from .catalog import quote_identifier, schema_query, select_tables
from .errors import EngineError, Phase, UnsupportedValueError
from .selection import Selection
from .utils.hashing import RawText, hash_rows

logger = logging.getLogger(__name__)

DIGEST_SIZE = 20


@contextmanager
def raw_text(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Temporarily return TEXT as RawText and rows as plain tuples.

    The caller's ``text_factory`` and ``row_factory`` are restored on exit,
    whether or not the body raised.
    """
    saved_text_factory = conn.text_factory
    saved_row_factory = conn.row_factory
    conn.text_factory = RawText
    conn.row_factory = None
    try:
        yield conn
    finally:
        conn.text_factory = saved_text_factory
        conn.row_factory = saved_row_factory


def hash_content(hasher: Any, conn: sqlite3.Connection, pattern: Optional[str] = None) -> None:
    """Hash every row of every table whose name is LIKE *pattern*.

    Tables are visited in catalog order; rows in whatever order a plain
    ``SELECT *`` yields them.

    Raises:
        EngineError: With phase TABLE_DISCOVERY or CONTENT_SCAN.
    """
    with raw_text(conn):
        try:
            tables = select_tables(conn, pattern)
        except (sqlite3.Error, UnicodeError) as exc:
            raise EngineError(Phase.TABLE_DISCOVERY, str(exc)) from exc
        logger.debug("hashing content of %d table(s)", len(tables))

        for name in tables:
            try:
                with closing(conn.execute(f"SELECT * FROM {quote_identifier(name)}")) as cursor:
                    row_count = hash_rows(hasher, cursor)
            except sqlite3.Error as exc:
                raise EngineError(Phase.CONTENT_SCAN, str(exc), table=name) from exc
            except UnsupportedValueError as exc:
                raise UnsupportedValueError(f"{exc} in table {name!r}") from exc
            logger.debug("hashed table %r (%d rows)", name, row_count)


def hash_schema(hasher: Any, conn: sqlite3.Connection, pattern: Optional[str] = None) -> None:
    """Hash (type, name, tbl_name, sql) of every catalog object owned by a matching table.

    Raises:
        EngineError: With phase SCHEMA_SCAN.
    """
    sql, params = schema_query(pattern)
    with raw_text(conn):
        try:
            with closing(conn.execute(sql, params)) as cursor:
                row_count = hash_rows(hasher, cursor)
        except (sqlite3.Error, UnicodeError) as exc:
            raise EngineError(Phase.SCHEMA_SCAN, str(exc)) from exc
    logger.debug("hashed %d schema object(s)", row_count)


def dbhash(
    conn: sqlite3.Connection,
    pattern: Optional[str] = None,
    selection: Selection = Selection.SCHEMA_AND_CONTENT,
) -> bytes:
    """Compute the 20-byte SHA-1 digest of a database, as the stock dbhash tool does.

    Args:
        conn:      Open connection to the database.
        pattern:   Optional LIKE pattern restricting the tables hashed
                   (``--like``); None hashes every table.
        selection: Which of content and schema contribute.

    Content is always hashed before schema when both are selected.

    Raises:
        EngineError: If any query fails; no partial digest is returned.
        UnsupportedValueError: If a value outside the SQLite storage classes is read.
    """
    logger.debug("dbhash pattern=%r selection=%s", pattern, selection.value)
    hasher = hashlib.sha1()
    if selection.includes_content:
        hash_content(hasher, conn, pattern)
    if selection.includes_schema:
        hash_schema(hasher, conn, pattern)
    return hasher.digest()


def dbhash_hex(
    conn: sqlite3.Connection,
    pattern: Optional[str] = None,
    selection: Selection = Selection.SCHEMA_AND_CONTENT,
) -> str:
    """Same as :func:`dbhash`, returned as 40 lowercase hex characters."""
    return dbhash(conn, pattern, selection).hex()
