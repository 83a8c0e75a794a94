"""Digest manifest validation against JSON Schema draft-07 definitions."""

import json
from pathlib import Path

import jsonschema

MANIFEST_SCHEMAS: dict[str, str] = {
    "DigestManifest": "DigestManifest.v1.json",
}

SCHEMAS_DIR = Path(__file__).parent / "schemas"


def validate_manifest(data: dict, schema_id: str = "DigestManifest") -> None:
    """Load schema from disk and validate data against it.

    Raises:
        KeyError: If schema_id is not recognised.
        jsonschema.ValidationError: If data does not conform to the schema.
        jsonschema.SchemaError: If the schema file itself is malformed.
    """
    schema_file = SCHEMAS_DIR / MANIFEST_SCHEMAS[schema_id]
    schema = json.loads(schema_file.read_text(encoding="utf-8"))
    jsonschema.validate(instance=data, schema=schema)
