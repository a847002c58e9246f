"""CLI command implementations"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from mdcollect.config import Settings, load_config
from mdcollect.core.errors import BuildFailed, ConfigurationError
from mdcollect.core.export import collection_to_json
from mdcollect.core.pipeline import BuildResult, build_collections, run_build, run_export
from mdcollect.core.registry import CollectionRegistry
from mdcollect.crud.database import init_db, make_engine, reset_db


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    return settings


def _fail_build(e: BuildFailed) -> None:
    """Print every collected failure, then exit 1."""
    for line in e.report():
        typer.echo(f"  {line}", err=True)
    _fail(f"Build failed with {len(e.failures)} error(s)")


def _engine(settings: Settings):
    if not settings.cache:
        return None
    engine = make_engine(settings.db_url)
    init_db(engine)
    return engine


def _build(settings: Settings, registry: CollectionRegistry) -> BuildResult:
    """run_build with standard CLI error handling."""
    try:
        return run_build(settings, registry, _engine(settings))
    except BuildFailed as e:
        _fail_build(e)
    except (ConfigurationError, ValueError) as e:
        _fail("Invalid collection configuration", e)


def build_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    concurrency: Annotated[Optional[int], typer.Option("--concurrency", help="Worker threads; 0 = CPU count")] = None,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Compile every body, ignoring the cache")] = False,
    ):
    """Run the full pipeline: load -> validate -> compile -> derive -> export."""
    settings = _settings(overrides={
        "output_dir": out, "concurrency": concurrency, "cache": False if no_cache else None,
    })
    registry = CollectionRegistry()
    result = _build(settings, registry)

    for kind, count in result.counts().items():
        typer.echo(f"  {kind}: {count} record(s)")
    typer.echo(f"Compiled {result.compiled} body(ies), {result.cached} from cache")

    output_dir = Path(settings.output_dir)
    try:
        exported = run_export(registry, output_dir)
    except OSError as e:
        _fail("Export failed", e)
    for kind, count, path in exported:
        typer.echo(f"  {kind} -> {path}")
    typer.echo(f"Exported {len(exported)} collection(s) to {output_dir}/")


def check_cmd():
    """Validate and compile every document without exporting or touching the cache."""
    settings = _settings()
    try:
        result = build_collections(settings)
    except BuildFailed as e:
        _fail_build(e)
    except (ConfigurationError, ValueError) as e:
        _fail("Invalid collection configuration", e)
    total = sum(result.counts().values())
    typer.echo(f"OK - {total} document(s) in {len(result.collections)} collection(s)")


def list_cmd():
    """List configured collection kinds with their directory and include glob."""
    settings = _settings()
    for kind, cfg in settings.collection_configs().items():
        typer.echo(f"{kind}\t{settings.directory_for(kind)}\t{cfg.include}")


def show_cmd(
    kind: Annotated[str, typer.Argument(help="Collection kind, e.g. posts")],
    slug: Annotated[Optional[str], typer.Argument(help="Print this record as JSON")] = None,
    ):
    """List the slugs of a collection, or print one record as JSON."""
    settings = _settings()
    registry = CollectionRegistry()
    _build(settings, registry)

    try:
        records = registry.get_collection(kind)
        record = registry.find_by_slug(kind, slug) if slug else None
    except ConfigurationError as e:
        _fail(str(e))

    if slug is None:
        for r in records:
            typer.echo(r.slug)
        return
    if record is None:
        _fail(f"No {kind} record with slug '{slug}'")
    typer.echo(json.dumps(collection_to_json([record])[0], indent=2, sort_keys=True, ensure_ascii=False))


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate the compile cache")] = False,
    ):
    """Initialize the compile cache database. Use --reset to clear cached bodies."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing cache cleared.")
    else:
        init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")
