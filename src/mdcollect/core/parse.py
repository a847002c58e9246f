"""File discovery, front-matter splitting, and untyped YAML front-matter extraction"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

import yaml

from mdcollect.core.errors import MalformedDocument
from mdcollect.core.models import FileIdentity, SourceDocument


logger = logging.getLogger(__name__)

DELIMITER = "---"
DEFAULT_INCLUDE = "*.md"


def discover_files(directory: Path, include: str = DEFAULT_INCLUDE) -> list[Path]:
    """Return files under directory matching the include glob, in sorted path order."""
    if not directory.is_dir():
        logger.warning("Content directory %s does not exist", directory)
        return []
    return sorted(p for p in directory.glob(include) if p.is_file())


def split_document(text: str, path: Path | str | None = None) -> tuple[str, str]:
    """Return (raw_frontmatter, body) split at the first pair of '---' lines.

    Anything before the opening delimiter is discarded. Raises MalformedDocument
    when either delimiter is missing.
    """
    lines = text.splitlines(keepends=True)
    opening = next((i for i, line in enumerate(lines) if line.strip() == DELIMITER), None)
    if opening is None:
        raise MalformedDocument(path, "no front-matter delimiter '---' found")

    closing = next(
        (i for i in range(opening + 1, len(lines)) if lines[i].strip() == DELIMITER), None
    )
    if closing is None:
        raise MalformedDocument(path, "closing front-matter delimiter '---' missing")

    return "".join(lines[opening + 1:closing]), "".join(lines[closing + 1:])


def _iso_dates(value: Any) -> Any:
    """YAML turns bare 2024-01-01 into a date; hand it back to validation as authored text."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return [_iso_dates(v) for v in value]
    if isinstance(value, dict):
        return {k: _iso_dates(v) for k, v in value.items()}
    return value


def parse_frontmatter(raw_frontmatter: str, path: Path | str | None = None) -> dict[str, Any]:
    """Phase one of metadata handling: raw YAML text -> untyped key/value mapping."""
    if not raw_frontmatter.strip():
        return {}
    try:
        data = yaml.safe_load(raw_frontmatter)
    except yaml.YAMLError as e:
        raise MalformedDocument(path, f"invalid YAML front-matter: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedDocument(path, f"front-matter must be a mapping, got {type(data).__name__}")
    return {str(k): _iso_dates(v) for k, v in data.items()}


def load_file(path: Path) -> SourceDocument:
    """Read and split a single file. Raises MalformedDocument."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedDocument(path, f"unreadable: {e}") from e
    raw_frontmatter, body = split_document(text, path)
    offset = len(text.splitlines(keepends=True)) - len(body.splitlines(keepends=True))
    return SourceDocument(
        file=FileIdentity.from_path(path),
        raw_frontmatter=raw_frontmatter,
        body=body,
        body_offset=offset,
    )


class DocumentLoader:
    """Restartable, lazy sequence of source documents for one directory + include glob.

    Each iteration re-discovers and re-reads the files. Malformed files are
    yielded as MalformedDocument instances (not raised) so one bad file never
    stops the others from loading.
    """

    def __init__(self, directory: Path | str, include: str = DEFAULT_INCLUDE):
        self.directory = Path(directory)
        self.include = include

    def files(self) -> list[Path]:
        return discover_files(self.directory, self.include)

    def __iter__(self) -> Iterator[SourceDocument | MalformedDocument]:
        for path in self.files():
            try:
                yield load_file(path)
            except MalformedDocument as e:
                logger.debug("Malformed document %s: %s", path, e.message)
                yield e

    def __repr__(self) -> str:
        return f"DocumentLoader({str(self.directory)!r}, {self.include!r})"


def load_documents(directory: Path | str, include: str = DEFAULT_INCLUDE) -> DocumentLoader:
    return DocumentLoader(directory, include)
