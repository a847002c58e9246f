"""Compiled-body cache persistence: lookup by content hash, insert, clear"""

from typing import Iterable

from sqlmodel import Session, select

from mdcollect.core.models import CompiledBody, Heading
from mdcollect.crud.models import CompiledEntry


def get_entry(session: Session, content_hash: str, fingerprint: str) -> CompiledEntry | None:
    """Return the cached entry for (content_hash, fingerprint), or None if not found."""
    return session.exec(
        select(CompiledEntry)
        .where(CompiledEntry.content_hash == content_hash)
        .where(CompiledEntry.fingerprint == fingerprint)
    ).one_or_none()


def load_cache(
    session: Session,
    fingerprint: str,
    hashes: Iterable[str] | None = None,
    ) -> dict[str, CompiledBody]:
    """Map content hash -> CompiledBody for every entry under fingerprint.

    The returned bodies carry an empty `raw`; the assembler fills it from the
    source document. When hashes is given only those entries are returned.
    """
    stmt = select(CompiledEntry).where(CompiledEntry.fingerprint == fingerprint)
    wanted = set(hashes) if hashes is not None else None
    cache = {}
    for entry in session.exec(stmt).all():
        if wanted is not None and entry.content_hash not in wanted:
            continue
        cache[entry.content_hash] = CompiledBody(
            html=entry.html,
            raw="",
            headings=tuple(Heading(**h) for h in entry.headings),
        )
    return cache


def store_compiled(session: Session, content_hash: str, fingerprint: str, body: CompiledBody) -> CompiledEntry:
    """Insert (or refresh) the entry for content_hash. Flushes but does not commit."""
    entry = get_entry(session, content_hash, fingerprint)
    headings = [h.model_dump() for h in body.headings]
    if entry is None:
        entry = CompiledEntry(
            content_hash=content_hash, fingerprint=fingerprint, html=body.html, headings=headings,
        )
    else:
        entry.html = body.html
        entry.headings = headings
    session.add(entry)
    session.flush()
    return entry


def clear_cache(session: Session, fingerprint: str | None = None) -> int:
    """Delete cached entries (all, or only those for one fingerprint). Returns the number removed."""
    stmt = select(CompiledEntry)
    if fingerprint is not None:
        stmt = stmt.where(CompiledEntry.fingerprint == fingerprint)
    rows = session.exec(stmt).all()
    for row in rows:
        session.delete(row)
    session.flush()
    return len(rows)


def count_entries(session: Session) -> int:
    return len(session.exec(select(CompiledEntry.id)).all())
