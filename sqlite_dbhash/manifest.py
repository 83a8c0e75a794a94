"""DigestManifest: recorded database digests for backup and replication checks."""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .errors import ManifestError
from .files import hash_file
from .selection import Selection
from .utils.hashing import hash_artifact
from .validator import validate_manifest

SCHEMA_VERSION = "1.0.0"


def _manifest_hash(manifest: dict) -> str:
    """Canonical hash of everything except the wall-clock timestamp and the hash itself."""
    return hash_artifact(
        {k: v for k, v in manifest.items() if k not in ("created_utc", "manifest_hash")}
    )


def build_manifest(
    db_paths: Iterable[str | Path],
    pattern: Optional[str] = None,
    selection: Selection = Selection.SCHEMA_AND_CONTENT,
    base_dir: str | Path = ".",
) -> dict:
    """Hash each database and return a DigestManifest dict.

    Entry paths are stored relative to *base_dir* (normally the directory the
    manifest is written to) and sorted for determinism.

    Raises:
        FileNotFoundError: If a database path does not exist.
        EngineError: If hashing a database fails.
    """
    entries = []
    for db_path in db_paths:
        rel_path = Path(os.path.relpath(Path(db_path).resolve(), Path(base_dir).resolve()))
        entries.append({
            "path": rel_path.as_posix(),
            "digest": hash_file(db_path, pattern, selection),
        })
    entries.sort(key=lambda e: e["path"])

    created_utc = os.environ.get("DBHASH_NOW_UTC")
    if not created_utc:
        created_utc = datetime.now(timezone.utc).isoformat()

    manifest: dict = {
        "schema_id": "DigestManifest",
        "schema_version": SCHEMA_VERSION,
        "algorithm": "sha1",
        "selection": selection.value,
        "like": pattern,
        "created_utc": created_utc,
        "entries": entries,
    }
    manifest["manifest_hash"] = _manifest_hash(manifest)
    return manifest


def write_manifest(manifest: dict, out_path: str | Path) -> None:
    """Validate *manifest* and write it as indented JSON.

    Raises:
        jsonschema.ValidationError: If manifest is schema-invalid.
    """
    validate_manifest(manifest)
    out_file = Path(out_path)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")


def read_manifest(path: str | Path) -> dict:
    """Load, validate and integrity-check a manifest file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not JSON.
        jsonschema.ValidationError: If the manifest is schema-invalid.
        ManifestError: If manifest_hash does not match the content.
    """
    manifest = json.loads(Path(path).read_text(encoding="utf-8"))
    validate_manifest(manifest)
    expected = _manifest_hash(manifest)
    if manifest["manifest_hash"] != expected:
        raise ManifestError(
            f"manifest_hash mismatch in {path}: "
            f"recorded {manifest['manifest_hash'][:12]}... computed {expected[:12]}..."
        )
    return manifest


def verify_manifest(manifest: dict, base_dir: str | Path = ".") -> list[dict]:
    """Recompute every recorded digest with the manifest's own filter and selection.

    Returns one result per entry, in manifest order::

        {"path": ..., "expected": ..., "actual": ... | None,
         "status": "ok" | "mismatch" | "missing"}

    Raises:
        EngineError: If a database that exists cannot be hashed.
    """
    selection = Selection(manifest["selection"])
    pattern = manifest["like"]
    results: list[dict] = []
    for entry in manifest["entries"]:
        db_file = Path(base_dir) / entry["path"]
        if not db_file.is_file():
            results.append({
                "path": entry["path"],
                "expected": entry["digest"],
                "actual": None,
                "status": "missing",
            })
            continue
        actual = hash_file(db_file, pattern, selection)
        results.append({
            "path": entry["path"],
            "expected": entry["digest"],
            "actual": actual,
            "status": "ok" if actual == entry["digest"] else "mismatch",
        })
    return results
