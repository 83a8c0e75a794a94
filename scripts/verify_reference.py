#!/usr/bin/env python3
"""Compare sqlite_dbhash digests against the stock dbhash binary on a scratch database."""

import os
import sqlite3
import subprocess
import sys
import tempfile
from contextlib import closing
from pathlib import Path

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from sqlite_dbhash.files import hash_file
from sqlite_dbhash.selection import Selection

SETUP_SQL = """
CREATE TABLE t (intval INT, textval TEXT, realval REAL, blobval BLOB, numericval NUMERIC);
INSERT INTO t VALUES (0, 'a', 0.0, x'00', 0.0);
INSERT INTO t VALUES (1, 'bbb', 3.14, x'0a0b0c0d', -2.72), (42, 'áÁñçéá', 1e999, x'', -1e999);
INSERT INTO t VALUES (NULL, NULL, NULL, NULL, NULL), (-100, 'NaN', 'NaN', x'', 'NaN');
CREATE TABLE "weird.table+name""!áÁñçéá" (intval INT, textval TEXT);
INSERT INTO "weird.table+name""!áÁñçéá" VALUES (0, '');
CREATE UNIQUE INDEX idx_t ON t (intval);
CREATE VIEW v AS SELECT intval FROM t;
"""

CASES = [
    (None, Selection.SCHEMA_AND_CONTENT),
    (None, Selection.SCHEMA_ONLY),
    (None, Selection.CONTENT_ONLY),
    ("t", Selection.SCHEMA_AND_CONTENT),
    ("weird%", Selection.SCHEMA_AND_CONTENT),
    ('%"%', Selection.CONTENT_ONLY),
    ("nothing-matches", Selection.SCHEMA_AND_CONTENT),
]

_FLAGS = {
    Selection.SCHEMA_AND_CONTENT: [],
    Selection.SCHEMA_ONLY: ["--schema-only"],
    Selection.CONTENT_ONLY: ["--without-schema"],
}


def stock_dbhash(binary: str, db_file: Path, pattern, selection: Selection) -> str:
    cmd = [binary]
    if pattern is not None:
        cmd += ["--like", pattern]
    cmd += _FLAGS[selection] + [str(db_file)]
    proc = subprocess.run(cmd, capture_output=True, check=True)
    return proc.stdout.decode("utf-8").split()[0]


def main() -> None:
    binary = os.environ.get("DBHASH_PATH")
    if not binary:
        print("DBHASH_PATH is not set. Point it at the stock dbhash binary, e.g.:\n"
              "  export DBHASH_PATH=/path/to/sqlite/dbhash")
        sys.exit(2)

    with tempfile.TemporaryDirectory(prefix="dbhash-verify-") as tmp:
        db_file = Path(tmp) / "reference.db"
        with closing(sqlite3.connect(db_file)) as conn:
            conn.executescript(SETUP_SQL)

        errors: list[str] = []
        for pattern, selection in CASES:
            expected = stock_dbhash(binary, db_file, pattern, selection)
            actual = hash_file(db_file, pattern, selection)
            label = f"like={pattern!r:<20} {selection.value:<20}"
            if expected == actual:
                print(f"  ✓ {label} {actual}")
            else:
                errors.append(f"{label} stock={expected} lib={actual}")
                print(f"  ✗ {label} stock={expected} lib={actual}")

        if errors:
            print(f"\nFAIL  {len(errors)} case(s) differ from the stock dbhash")
            sys.exit(1)
        print(f"\nPASS  all {len(CASES)} cases match the stock dbhash")


if __name__ == "__main__":
    main()
