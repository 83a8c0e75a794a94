"""Tests for DigestManifest build / write / read / verify and schema validation."""

import json
import sqlite3
from contextlib import closing
from pathlib import Path

import jsonschema
import pytest

from sqlite_dbhash.errors import ManifestError
from sqlite_dbhash.files import hash_file
from sqlite_dbhash.manifest import build_manifest, read_manifest, verify_manifest, write_manifest
from sqlite_dbhash.selection import Selection
from sqlite_dbhash.validator import validate_manifest


def _make_db(path: Path, rows: int = 2) -> Path:
    with closing(sqlite3.connect(path)) as conn:
        conn.execute("CREATE TABLE t(intval INT, textval TEXT)")
        conn.executemany(
            "INSERT INTO t VALUES (?, ?)", [(i, f"row-{i}") for i in range(rows)]
        )
        conn.commit()
    return path


@pytest.fixture
def dbs(tmp_path):
    return [_make_db(tmp_path / "b.db"), _make_db(tmp_path / "a.db", rows=3)]


class TestBuildManifest:
    def test_entries_sorted_and_relative(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        assert [e["path"] for e in manifest["entries"]] == ["a.db", "b.db"]
        assert manifest["entries"][0]["digest"] == hash_file(tmp_path / "a.db")

    def test_records_filter_and_selection(self, tmp_path, dbs):
        manifest = build_manifest(dbs, "t%", Selection.CONTENT_ONLY, base_dir=tmp_path)
        assert manifest["like"] == "t%"
        assert manifest["selection"] == "content-only"
        assert manifest["entries"][0]["digest"] == hash_file(
            tmp_path / "a.db", "t%", Selection.CONTENT_ONLY
        )

    def test_created_utc_from_env(self, tmp_path, dbs, monkeypatch):
        monkeypatch.setenv("DBHASH_NOW_UTC", "2026-01-01T00:00:00Z")
        manifest = build_manifest(dbs, base_dir=tmp_path)
        assert manifest["created_utc"] == "2026-01-01T00:00:00Z"

    def test_manifest_hash_ignores_timestamp(self, tmp_path, dbs, monkeypatch):
        monkeypatch.setenv("DBHASH_NOW_UTC", "2026-01-01T00:00:00Z")
        first = build_manifest(dbs, base_dir=tmp_path)
        monkeypatch.setenv("DBHASH_NOW_UTC", "2027-01-01T00:00:00Z")
        second = build_manifest(dbs, base_dir=tmp_path)
        assert first["manifest_hash"] == second["manifest_hash"]

    def test_built_manifest_is_schema_valid(self, tmp_path, dbs):
        validate_manifest(build_manifest(dbs, base_dir=tmp_path))

    def test_missing_database_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            build_manifest([tmp_path / "nope.db"], base_dir=tmp_path)


class TestWriteRead:
    def test_round_trip(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        out = tmp_path / "manifests" / "DigestManifest.json"
        write_manifest(manifest, out)
        assert read_manifest(out) == manifest

    def test_write_rejects_invalid(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        manifest["algorithm"] = "md5"
        with pytest.raises(jsonschema.ValidationError):
            write_manifest(manifest, tmp_path / "m.json")

    def test_tampered_digest_detected(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        out = tmp_path / "m.json"
        write_manifest(manifest, out)
        data = json.loads(out.read_text(encoding="utf-8"))
        data["entries"][0]["digest"] = "0" * 40
        out.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ManifestError, match="manifest_hash mismatch"):
            read_manifest(out)

    def test_malformed_digest_rejected(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        manifest["entries"][0]["digest"] = "XYZ"
        out = tmp_path / "m.json"
        out.write_text(json.dumps(manifest), encoding="utf-8")
        with pytest.raises(jsonschema.ValidationError):
            read_manifest(out)


class TestVerifyManifest:
    def test_all_ok(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        results = verify_manifest(manifest, base_dir=tmp_path)
        assert [r["status"] for r in results] == ["ok", "ok"]

    def test_mismatch_after_write(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        with closing(sqlite3.connect(tmp_path / "b.db")) as conn:
            conn.execute("INSERT INTO t VALUES (99, 'late')")
            conn.commit()
        statuses = {r["path"]: r["status"] for r in verify_manifest(manifest, base_dir=tmp_path)}
        assert statuses == {"a.db": "ok", "b.db": "mismatch"}

    def test_missing_database(self, tmp_path, dbs):
        manifest = build_manifest(dbs, base_dir=tmp_path)
        (tmp_path / "a.db").unlink()
        results = verify_manifest(manifest, base_dir=tmp_path)
        assert results[0]["status"] == "missing"
        assert results[0]["actual"] is None

    def test_uses_recorded_selection(self, tmp_path, dbs):
        manifest = build_manifest(dbs, None, Selection.CONTENT_ONLY, base_dir=tmp_path)
        with closing(sqlite3.connect(tmp_path / "a.db")) as conn:
            conn.execute("CREATE INDEX idx_t ON t (intval)")
        # an index is schema-only drift, invisible to a content-only manifest
        results = verify_manifest(manifest, base_dir=tmp_path)
        assert [r["status"] for r in results] == ["ok", "ok"]
