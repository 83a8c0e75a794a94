"""Value encoding and row streaming for database digests, plus canonical JSON hashing."""

import hashlib
import json
import logging
import struct
from typing import Any, Iterable, Optional, Sequence

from ..errors import UnsupportedValueError

logger = logging.getLogger(__name__)

# One-byte type tags, in SQLite storage-class order.
TAG_NULL = b"0"
TAG_INTEGER = b"1"
TAG_REAL = b"2"
TAG_TEXT = b"3"
TAG_BLOB = b"4"


class RawText(bytes):
    """TEXT value exactly as stored, before any UTF-8 decoding.

    Installed as the connection's ``text_factory`` so TEXT and BLOB values,
    which would otherwise both arrive as ``bytes``, stay distinguishable.
    """

    __slots__ = ()


def encode_value(value: Any) -> bytes:
    """Return the tag byte plus payload for one column value.

    Payloads carry no length prefix; integers and reals are 8 bytes big-endian,
    TEXT and BLOB are the raw stored bytes.

    Raises:
        UnsupportedValueError: If *value* is not one of the five SQLite storage classes.
    """
    if value is None:
        return TAG_NULL
    if isinstance(value, bool):
        raise UnsupportedValueError(f"unsupported column value type: {type(value).__name__}")
    if isinstance(value, int):
        return TAG_INTEGER + struct.pack(">q", value)
    if isinstance(value, float):
        # struct keeps the raw bit pattern of NaN and the infinities
        return TAG_REAL + struct.pack(">d", value)
    if isinstance(value, RawText):
        return TAG_TEXT + bytes(value)
    if isinstance(value, bytes):
        return TAG_BLOB + value
    raise UnsupportedValueError(f"unsupported column value type: {type(value).__name__}")


def describe_value(value: Any) -> str:
    """Short trace label for a column value."""
    if value is None:
        return "NULL"
    if isinstance(value, RawText):
        return f"TEXT {bytes(value).decode('utf-8', errors='replace')}"
    if isinstance(value, bytes):
        return f"BLOB ({len(value)} bytes)"
    if isinstance(value, float):
        return f"FLOAT {value!r}"
    return f"INT {value!r}"


def hash_rows(hasher: Any, rows: Iterable[Sequence[Any]]) -> int:
    """Feed every value of every row in *rows* into *hasher*, left to right.

    The column count is taken from the first row and reused for the rest of
    the result set. Errors raised by the cursor propagate unchanged.

    Returns the number of rows hashed.
    """
    trace = logger.isEnabledFor(logging.DEBUG)
    column_count: Optional[int] = None
    row_count = 0
    for row in rows:
        if column_count is None:
            column_count = len(row)
        for i in range(column_count):
            value = row[i]
            if trace:
                logger.debug(describe_value(value))
            hasher.update(encode_value(value))
        row_count += 1
    return row_count


def canonical_json_bytes(data: dict) -> bytes:
    """Stable serialisation: sorted keys, no extra whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def hash_artifact(data: dict) -> str:
    """SHA-256 hex digest of canonical JSON.

    Returns a 64-character lowercase hex string.
    """
    return hashlib.sha256(canonical_json_bytes(data)).hexdigest()
