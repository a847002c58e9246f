"""Pipeline step functions: build every configured collection, publish, export"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from sqlmodel import Session

from mdcollect.config import Settings
from mdcollect.core.assemble import CacheStats, Collection, assemble
from mdcollect.core.compile import BodyCompiler
from mdcollect.core.errors import BuildFailed, DocumentError
from mdcollect.core.export import write_collection
from mdcollect.core.models import CompiledBody
from mdcollect.core.parse import load_documents
from mdcollect.core.registry import CollectionRegistry, Collections
from mdcollect.crud.cache import load_cache, store_compiled


logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Collections from one build plus compile-cache statistics."""
    collections: dict[str, Collection] = field(default_factory=dict)
    compiled:    int = 0        # documents whose body was compiled this run
    cached:      int = 0        # documents whose body came from the compile cache

    def counts(self) -> dict[str, int]:
        return {kind: len(records) for kind, records in self.collections.items()}


def make_compiler(settings: Settings) -> BodyCompiler:
    return BodyCompiler(settings.extensions, settings.parser_config)


def _persist(engine, fingerprint: str, fresh: dict[str, CompiledBody]) -> None:
    with Session(engine) as session:
        for content_hash, body in fresh.items():
            store_compiled(session, content_hash, fingerprint, body)
        session.commit()


def build_collections(
    settings: Settings,
    engine=None,
    cancel: threading.Event | None = None,
    ) -> BuildResult:
    """Load, validate, compile and derive every configured kind.

    Every kind is attempted before failing; raises BuildFailed carrying the
    failures of all kinds. Compiled bodies are written to the cache (when an
    engine is given and caching is enabled) even if the build fails.
    """
    schemas = settings.schema_registry()
    configs = settings.collection_configs()
    compiler = make_compiler(settings)
    use_cache = engine is not None and settings.cache

    cache: dict[str, CompiledBody] = {}
    if use_cache:
        with Session(engine) as session:
            cache = load_cache(session, compiler.fingerprint)
        logger.info("Loaded %d cached compiled bodies", len(cache))

    fresh: dict[str, CompiledBody] = {}
    stats = CacheStats()
    result = BuildResult()
    failures: list[DocumentError] = []
    for kind in schemas.kinds():
        documents = load_documents(settings.directory_for(kind), configs[kind].include)
        try:
            result.collections[kind] = assemble(
                kind,
                schemas.get(kind),
                documents,
                compiler,
                words_per_minute=settings.words_per_minute,
                concurrency=settings.concurrency or None,
                cancel=cancel,
                cache=cache,
                on_compiled=fresh.__setitem__,
                stats=stats,
            )
        except BuildFailed as e:
            failures.extend(e.failures)

    result.compiled, result.cached = stats.misses, stats.hits
    if use_cache and fresh:
        _persist(engine, compiler.fingerprint, fresh)
        logger.info("Stored %d newly compiled bodies", len(fresh))

    if failures:
        raise BuildFailed(failures)
    return result


def run_build(
    settings: Settings,
    registry: CollectionRegistry,
    engine=None,
    cancel: threading.Event | None = None,
    ) -> BuildResult:
    """Build every collection and publish them to registry. A failed build leaves registry untouched."""
    holder: list[BuildResult] = []

    def _build() -> Collections:
        holder.append(build_collections(settings, engine, cancel))
        return holder[0].collections

    registry.rebuild(_build)
    return holder[0]


def run_export(registry: CollectionRegistry, output_dir: Path) -> list[tuple[str, int, Path]]:
    """Write every published collection to output_dir. Returns (kind, record_count, path) triples."""
    results = []
    for kind in registry.kinds():
        records = registry.get_collection(kind)
        results.append((kind, len(records), write_collection(kind, records, output_dir)))
    return results
