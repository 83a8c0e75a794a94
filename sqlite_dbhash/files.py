"""Opening database files read-only and hashing them by path."""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional

from .digest import dbhash_hex
from .selection import Selection


def open_readonly(path: str | Path) -> sqlite3.Connection:
    """Open the SQLite database at *path* read-only.

    Uses a ``file:`` URI with ``mode=ro`` so a missing path is never created
    as an empty database.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    db_path = Path(path).resolve()
    if not db_path.is_file():
        raise FileNotFoundError(f"Database file not found: {db_path}")
    return sqlite3.connect(f"{db_path.as_uri()}?mode=ro", uri=True)


def hash_file(
    path: str | Path,
    pattern: Optional[str] = None,
    selection: Selection = Selection.SCHEMA_AND_CONTENT,
) -> str:
    """Open *path* read-only, return its hex digest and close the connection."""
    with closing(open_readonly(path)) as conn:
        return dbhash_hex(conn, pattern, selection)
