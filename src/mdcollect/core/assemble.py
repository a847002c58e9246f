"""Collection assembly: per-document validate -> compile -> derive, then the cross-document join"""

import logging
import os
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterable, Mapping

from mdcollect.core.compile import BodyCompiler
from mdcollect.core.derive import WORDS_PER_MINUTE, check_dates, derive, derive_slug
from mdcollect.core.errors import (
    BuildCancelled, BuildFailed, CompilationError, DocumentError,
    DuplicateSlug, MalformedDocument, ValidationFailed,
)
from mdcollect.core.models import CollectionRecord, CompiledBody, SourceDocument
from mdcollect.core.parse import parse_frontmatter
from mdcollect.core.schema import Schema
from mdcollect.core.utils.hashing import sha256
from mdcollect.core.validate import check


logger = logging.getLogger(__name__)

Collection = tuple[CollectionRecord, ...]


@dataclass(frozen=True)
class Outcome:
    """Result of processing one document: a record, or every failure found in it."""
    path:      str | None = None
    slug:      str | None = None
    record:    CollectionRecord | None = None
    errors:    tuple[DocumentError, ...] = ()
    compiled:  CompiledBody | None = None   # set only when freshly compiled (cache miss)
    cache_hit: bool = False
    skipped:   bool = False                 # build cancelled before this document started


@dataclass
class CacheStats:
    """Per-document compile counts, updated on the calling thread after each join."""
    hits:   int = 0
    misses: int = 0


def process_document(
    doc: SourceDocument,
    schema: Schema,
    compiler: BodyCompiler,
    words_per_minute: int = WORDS_PER_MINUTE,
    cached: CompiledBody | None = None,
    ) -> Outcome:
    """Run one source document through validate -> compile -> derive.

    Every stage runs even when an earlier one failed, so the outcome lists all
    problems in the document at once. Errors carry the document path.
    """
    path = doc.file.path
    errors: list[DocumentError] = []

    values: dict = {}
    try:
        raw = parse_frontmatter(doc.raw_frontmatter, path)
    except MalformedDocument as e:
        errors.append(e)
    else:
        values, field_errors = check(schema, raw)
        if field_errors:
            errors.append(ValidationFailed(field_errors, path))

    fresh = None
    body = cached
    if body is None:
        try:
            body = fresh = compiler.compile(doc.body, doc.body_offset)
        except CompilationError as e:
            errors.append(e.with_path(path))
    elif body.raw != doc.body:
        body = body.model_copy(update={"raw": doc.body})

    _, date_errors = check_dates(schema, values)
    errors.extend(e.with_path(path) for e in date_errors)

    outcome = Outcome(
        path=path,
        slug=derive_slug(doc.file.file_name),
        compiled=fresh,
        cache_hit=cached is not None,
    )
    if errors:
        return replace(outcome, errors=tuple(errors))

    metadata = schema.metadata_model(**values)
    derived = derive(doc.file, metadata, body, schema, words_per_minute)
    fields = {name: getattr(metadata, name) for name in schema.fields}
    fields.update(derived.dates)
    record = schema.record_model(
        kind=schema.kind,
        slug=derived.slug,
        read_time=derived.read_time,
        file=doc.file,
        body=body,
        metadata=metadata,
        **fields,
    )
    return replace(outcome, record=record)


def _malformed(error: MalformedDocument) -> Outcome:
    slug = derive_slug(Path(error.path).name) if error.path else None
    return Outcome(path=error.path, slug=slug, errors=(error,))


def _duplicate_slugs(outcomes: Iterable[Outcome]) -> list[DuplicateSlug]:
    """Slugs come from file names alone, so every loaded document takes part, failed or not."""
    by_slug: dict[str, list[str]] = defaultdict(list)
    for o in outcomes:
        if o.slug is not None:
            by_slug[o.slug].append(o.path)
    return [DuplicateSlug(slug, paths) for slug, paths in by_slug.items() if len(paths) > 1]


def assemble(
    kind: str,
    schema: Schema,
    documents: Iterable[SourceDocument | MalformedDocument],
    compiler: BodyCompiler | None = None,
    words_per_minute: int = WORDS_PER_MINUTE,
    concurrency: int | None = None,
    cancel: threading.Event | None = None,
    cache: Mapping[str, CompiledBody] | None = None,
    on_compiled: Callable[[str, CompiledBody], None] | None = None,
    stats: CacheStats | None = None,
    ) -> Collection:
    """Build one collection. Raises BuildFailed listing every failure, only after all documents ran.

    cache maps sha256(raw body) to a previously compiled body and is only read
    by worker threads. on_compiled(content_hash, body) is called on the calling
    thread after the join for every cache miss that compiled cleanly.
    """
    compiler = compiler or BodyCompiler()
    cache = cache or {}
    workers = concurrency or os.cpu_count() or 1
    _ = schema.record_model, schema.metadata_model  # build models before fanning out

    def _work(item: SourceDocument | MalformedDocument) -> Outcome:
        if isinstance(item, MalformedDocument):
            return _malformed(item)
        if cancel is not None and cancel.is_set():
            return Outcome(skipped=True)
        logger.debug("Processing %s", item.file.path)
        return process_document(item, schema, compiler, words_per_minute, cache.get(sha256(item.body)))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"mdcollect-{kind}") as pool:
        outcomes = list(pool.map(_work, documents))

    if cancel is not None and cancel.is_set():
        raise BuildCancelled(f"Build of collection {kind!r} cancelled")

    records = [o.record for o in outcomes if o.record is not None]
    failures = [e for o in outcomes for e in o.errors]
    failures += _duplicate_slugs(outcomes)

    for o in outcomes:
        if o.compiled is not None and on_compiled is not None:
            on_compiled(sha256(o.compiled.raw), o.compiled)
        if stats is not None:
            stats.hits += o.cache_hit
            stats.misses += o.compiled is not None

    logger.info("Assembled %s: %d record(s), %d failure(s)", kind, len(records), len(failures))
    if failures:
        raise BuildFailed(failures, kind)
    return tuple(records)
