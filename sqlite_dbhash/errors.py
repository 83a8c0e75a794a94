"""Exception types raised while computing database digests."""

import enum
from typing import Optional


class Phase(enum.Enum):
    """Stage of a digest computation, reported with engine failures."""

    TABLE_DISCOVERY = "table discovery"
    CONTENT_SCAN = "content scan"
    SCHEMA_SCAN = "schema scan"


class DbHashError(Exception):
    """Base class for all sqlite_dbhash errors."""


class EngineError(DbHashError):
    """A SQLite error aborted the digest computation.

    The original ``sqlite3.Error`` is available as ``__cause__``.
    """

    def __init__(self, phase: Phase, message: str, table: Optional[str] = None) -> None:
        self.phase = phase
        self.table = table
        where = phase.value if table is None else f"{phase.value} of table {table!r}"
        super().__init__(f"{where} failed: {message}")


class UnsupportedValueError(DbHashError, TypeError):
    """The engine produced a column value outside the five SQLite storage classes."""


class ManifestError(DbHashError):
    """A digest manifest is inconsistent with its own recorded hash."""
