"""Derived fields: URL slug, reading-time estimate, and date coercion"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel

from mdcollect.core.errors import DateParseError, InvalidDates
from mdcollect.core.models import CompiledBody, DerivedFields, FileIdentity
from mdcollect.core.schema import Schema


WORDS_PER_MINUTE = 300

FENCE_RE = re.compile(r'```[\s\S]*?```')
TAG_RE = re.compile(r'<[^>]*>')

# Accepted in addition to ISO 8601 (date, datetime, 'Z' suffix).
DATE_FORMATS = ("%Y/%m/%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y")


def derive_slug(file_name: str) -> str:
    """Filename without extension, spaces -> '-', lowercased. Punctuation is kept as-is."""
    stem, dot, ext = file_name.rpartition(".")
    base = stem if dot and stem else file_name
    return base.replace(" ", "-").lower()


def count_words(raw: str) -> int:
    """Words in the raw body, excluding fenced code and HTML-like tags."""
    text = TAG_RE.sub(" ", FENCE_RE.sub(" ", raw))
    return len(text.split())


def read_time(raw: str, words_per_minute: int = WORDS_PER_MINUTE) -> str:
    """Estimated reading time as '<N> min read', never below 1."""
    minutes = max(1, math.ceil(count_words(raw) / words_per_minute))
    return f"{minutes} min read"


def parse_date(value: str) -> datetime:
    """Parse a date string to an aware datetime; naive values are taken as UTC. Raises ValueError."""
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"unrecognised date: {value!r}") from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def check_dates(schema: Schema, values: Mapping[str, Any]) -> tuple[dict[str, datetime], list[DateParseError]]:
    """Return (parsed dates, one DateParseError per bad field) without raising. Absent or None fields are skipped."""
    dates: dict[str, datetime] = {}
    errors: list[DateParseError] = []
    for name in schema.date_fields():
        value = values.get(name)
        if value is None:
            continue
        try:
            dates[name] = parse_date(value)
        except ValueError:
            errors.append(DateParseError(name, value))
    return dates, errors


def coerce_dates(schema: Schema, metadata: BaseModel) -> dict[str, datetime]:
    """Parse every date-string field of validated metadata. Raises InvalidDates naming every bad field."""
    dates, errors = check_dates(schema, metadata.model_dump())
    if errors:
        raise InvalidDates(errors)
    return dates


def derive(
    file: FileIdentity,
    metadata: BaseModel,
    body: CompiledBody,
    schema: Schema,
    words_per_minute: int = WORDS_PER_MINUTE,
    ) -> DerivedFields:
    """Compute slug, read time, and coerced dates for one document."""
    return DerivedFields(
        slug=derive_slug(file.file_name),
        read_time=read_time(body.raw, words_per_minute),
        dates=coerce_dates(schema, metadata),
    )
