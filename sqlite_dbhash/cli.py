"""Click CLI entrypoint for sqlite-dbhash."""

import json
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click
import jsonschema

from .errors import DbHashError
from .files import hash_file
from .manifest import build_manifest, read_manifest, verify_manifest, write_manifest
from .selection import Selection


def _digest_options(fn: Callable) -> Callable:
    """Attach the stock dbhash selection options (--like, --schema-only, --without-schema)."""
    fn = click.option(
        "--without-schema",
        is_flag=True,
        default=False,
        help="Hash table content only",
    )(fn)
    fn = click.option(
        "--schema-only",
        is_flag=True,
        default=False,
        help="Hash the schema only",
    )(fn)
    fn = click.option(
        "--like",
        "pattern",
        default=None,
        metavar="PATTERN",
        help="Only hash tables whose name is LIKE PATTERN",
    )(fn)
    return fn


def _selection(schema_only: bool, without_schema: bool) -> Selection:
    try:
        return Selection.from_flags(schema_only, without_schema)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


def _db_path_argument(nargs: int) -> Callable:
    return click.argument(
        "db_files",
        nargs=nargs,
        required=True,
        type=click.Path(exists=True, dir_okay=False, readable=True),
    )


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Trace every hashed value to stderr",
)
def cli(debug: bool) -> None:
    """Compute SHA-1 digests of SQLite databases, compatible with the stock dbhash tool."""
    if debug:
        package_logger = logging.getLogger("sqlite_dbhash")
        if not package_logger.handlers:
            handler = logging.StreamHandler(click.get_text_stream("stderr"))
            handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
            package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG)


@cli.command("hash")
@_digest_options
@_db_path_argument(-1)
def hash_command(
    pattern: Optional[str],
    schema_only: bool,
    without_schema: bool,
    db_files: tuple[str, ...],
) -> None:
    """Print '<sha1> <file>' for each database file."""
    selection = _selection(schema_only, without_schema)
    failed = False
    for db_file in db_files:
        try:
            digest = hash_file(db_file, pattern, selection)
        except (DbHashError, OSError) as exc:
            click.echo(f"ERROR: {db_file}: {exc}", err=True)
            failed = True
            continue
        click.echo(f"{digest} {db_file}")
    if failed:
        sys.exit(1)


@cli.command("compare")
@_digest_options
@click.argument("db_a", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.argument("db_b", type=click.Path(exists=True, dir_okay=False, readable=True))
def compare_command(
    pattern: Optional[str],
    schema_only: bool,
    without_schema: bool,
    db_a: str,
    db_b: str,
) -> None:
    """Exit 0 if two databases hash identically, 1 otherwise."""
    selection = _selection(schema_only, without_schema)
    try:
        digest_a = hash_file(db_a, pattern, selection)
        digest_b = hash_file(db_b, pattern, selection)
    except (DbHashError, OSError) as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    click.echo(f"{digest_a} {db_a}")
    click.echo(f"{digest_b} {db_b}")
    if digest_a != digest_b:
        click.echo("DIFFERENT")
        sys.exit(1)
    click.echo("IDENTICAL")


@cli.command("snapshot")
@_digest_options
@click.option(
    "--out",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to write the DigestManifest JSON",
)
@_db_path_argument(-1)
def snapshot_command(
    pattern: Optional[str],
    schema_only: bool,
    without_schema: bool,
    out: str,
    db_files: tuple[str, ...],
) -> None:
    """Record the digests of one or more databases in a manifest."""
    selection = _selection(schema_only, without_schema)
    out_path = Path(out)
    try:
        manifest = build_manifest(
            db_files, pattern, selection, base_dir=out_path.resolve().parent
        )
        write_manifest(manifest, out_path)
    except (DbHashError, OSError) as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    for entry in manifest["entries"]:
        click.echo(f"{entry['digest']} {entry['path']}")
    click.echo(f"Wrote {out_path} ({len(manifest['entries'])} entries)")


@cli.command("verify")
@click.option(
    "--manifest",
    "manifest_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to a DigestManifest JSON written by 'snapshot'",
)
def verify_command(manifest_file: str) -> None:
    """Re-hash the databases recorded in a manifest and report any drift."""
    manifest_path = Path(manifest_file)
    try:
        manifest = read_manifest(manifest_path)
    except json.JSONDecodeError as exc:
        click.echo(f"ERROR: manifest is not valid JSON: {exc}", err=True)
        sys.exit(1)
    except jsonschema.ValidationError as exc:
        click.echo(f"ERROR: manifest is schema-invalid: {exc.message}", err=True)
        sys.exit(1)
    except DbHashError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    try:
        results = verify_manifest(manifest, base_dir=manifest_path.resolve().parent)
    except (DbHashError, OSError) as exc:
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    failures = 0
    for result in results:
        if result["status"] == "ok":
            click.echo(f"OK        {result['path']}")
        elif result["status"] == "missing":
            failures += 1
            click.echo(f"MISSING   {result['path']}")
        else:
            failures += 1
            click.echo(
                f"MISMATCH  {result['path']} "
                f"(expected {result['expected'][:12]}... got {result['actual'][:12]}...)"
            )

    if failures:
        click.echo(f"{failures} of {len(results)} database(s) failed verification", err=True)
        sys.exit(1)
    click.echo(f"All {len(results)} database(s) verified.")
