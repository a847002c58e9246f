"""Process-wide, read-only view of the most recently published collections"""

import logging
import threading
from types import MappingProxyType
from typing import Callable, Iterator, Mapping

from mdcollect.core.errors import UnknownKind
from mdcollect.core.models import CollectionRecord


logger = logging.getLogger(__name__)

Collections = Mapping[str, tuple[CollectionRecord, ...]]


class CollectionView:
    """One published build: the collections and their slug index, never mutated."""

    __slots__ = ("collections", "slugs")

    def __init__(self, collections: Collections | None = None):
        frozen = {kind: tuple(records) for kind, records in (collections or {}).items()}
        self.collections: Collections = MappingProxyType(frozen)
        self.slugs: Mapping[str, Mapping[str, CollectionRecord]] = MappingProxyType({
            kind: MappingProxyType({r.slug: r for r in records})
            for kind, records in frozen.items()
        })

    def kinds(self) -> list[str]:
        return list(self.collections)

    def get_collection(self, kind: str) -> tuple[CollectionRecord, ...]:
        """All records of a kind in enumeration order. Raises UnknownKind."""
        try:
            return self.collections[kind]
        except KeyError:
            raise UnknownKind(kind) from None

    def find_by_slug(self, kind: str, slug: str) -> CollectionRecord | None:
        """Return the record with the given slug, or None if not found. Raises UnknownKind."""
        try:
            by_slug = self.slugs[kind]
        except KeyError:
            raise UnknownKind(kind) from None
        return by_slug.get(slug)

    def __contains__(self, kind: object) -> bool:
        return kind in self.collections

    def __iter__(self) -> Iterator[str]:
        return iter(self.collections)

    def __len__(self) -> int:
        return len(self.collections)


class CollectionRegistry:
    """Holds the current CollectionView. Readers always see one complete build, old or new.

    publish() swaps the single view reference; views are immutable, so reads
    need no lock. Callers wanting several consistent reads take snapshot() once.
    """

    def __init__(self, collections: Collections | None = None):
        self._lock = threading.Lock()
        self._view = CollectionView()
        if collections:
            self.publish(collections)

    def publish(self, collections: Collections) -> CollectionView:
        """Atomically replace every published collection."""
        view = CollectionView(collections)
        with self._lock:
            self._view = view
        logger.info(
            "Published %d collection(s): %s",
            len(view), ", ".join(f"{k}={len(v)}" for k, v in view.collections.items()),
        )
        return view

    def rebuild(self, build: Callable[[], Collections]) -> CollectionView:
        """Run build() and publish its result. If build raises, the current state is kept."""
        return self.publish(build())

    def snapshot(self) -> CollectionView:
        return self._view

    def kinds(self) -> list[str]:
        return self._view.kinds()

    def get_collection(self, kind: str) -> tuple[CollectionRecord, ...]:
        return self._view.get_collection(kind)

    def find_by_slug(self, kind: str, slug: str) -> CollectionRecord | None:
        return self._view.find_by_slug(kind, slug)

    def __contains__(self, kind: object) -> bool:
        return kind in self._view
