"""Export: write each published collection as a deterministic JSON array"""

import json
from pathlib import Path
from typing import Iterable

from mdcollect.core.models import CollectionRecord


def collection_to_json(records: Iterable[CollectionRecord]) -> list[dict]:
    """Records as JSON-ready dicts (camelCase keys, ISO dates), in collection order."""
    return [r.to_json_dict() for r in records]


def dumps_collection(records: Iterable[CollectionRecord]) -> str:
    """Serialise a collection; identical records always produce identical text."""
    return json.dumps(collection_to_json(records), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_collection(kind: str, records: Iterable[CollectionRecord], output_dir: Path) -> Path:
    """Write <output_dir>/<kind>.json and return its path. Unchanged content is not rewritten."""
    output_dir.mkdir(parents=True, exist_ok=True)
    out_file = output_dir / f"{kind}.json"
    text = dumps_collection(records)
    if not out_file.exists() or out_file.read_text(encoding="utf-8") != text:
        out_file.write_text(text, encoding="utf-8")
    return out_file
