"""Schema-driven validation of untyped front-matter into typed metadata models

Phase two of metadata handling: every declared field either converts to its
declared type or contributes a FieldError. All errors are gathered in one
pass and raised together as ValidationFailed.
"""

import math
import re
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from mdcollect.core.errors import ValidationFailed
from mdcollect.core.models import FieldError
from mdcollect.core.schema import FieldSpec, FieldType, Schema


NUMBER_RE = re.compile(r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')

_MISSING = object()


class _Invalid(Exception):
    """Internal: a single field failed conversion."""

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received


def _describe(value: Any) -> str:
    """Short human-readable description of a received value for error reports."""
    if value is _MISSING:
        return "missing"
    if value is None:
        return "null"
    text = repr(value)
    if len(text) > 60:
        text = text[:57] + "..."
    return f"{type(value).__name__} {text}"


def _to_string(value: Any) -> str:
    if not isinstance(value, str):
        raise _Invalid("string", _describe(value))
    return value.strip()


def _to_string_array(value: Any) -> tuple[str, ...]:
    # A comma-separated string is an error, never auto-split.
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _Invalid("array of strings", _describe(value))
    return tuple(v.strip() for v in value)


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise _Invalid("number", _describe(value))
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise _Invalid("finite number", _describe(value))
        return value
    if isinstance(value, str) and NUMBER_RE.fullmatch(value.strip()):
        text = value.strip()
        if re.fullmatch(r'[+-]?\d+', text):
            return int(text)
        return float(text)
    raise _Invalid("number", _describe(value))


def _to_optional_string(value: Any) -> str | None:
    return None if value is None else _to_string(value)


def _to_date_string(value: Any) -> str:
    # Parsing into a datetime happens in derive.coerce_dates.
    if not isinstance(value, str) or not value.strip():
        raise _Invalid("date string", _describe(value))
    return value.strip()


CONVERTERS: dict[FieldType, Callable[[Any], Any]] = {
    FieldType.string:          _to_string,
    FieldType.string_array:    _to_string_array,
    FieldType.number:          _to_number,
    FieldType.optional_string: _to_optional_string,
    FieldType.date_string:     _to_date_string,
}


def validate_field(name: str, spec: FieldSpec, raw: Mapping[str, Any]) -> Any:
    """Convert one field. Raises _Invalid on failure."""
    value = raw.get(name, _MISSING)
    if value is _MISSING or (value is None and spec.type != FieldType.optional_string):
        if spec.required:
            raise _Invalid(spec.type.value, _describe(value))
        return spec.default
    return CONVERTERS[spec.type](value)


def check(schema: Schema, raw: Mapping[str, Any]) -> tuple[dict[str, Any], list[FieldError]]:
    """Return (converted values, errors) without raising. Unknown keys in raw are ignored."""
    values: dict[str, Any] = {}
    errors: list[FieldError] = []
    for name, spec in schema.fields.items():
        try:
            values[name] = validate_field(name, spec, raw)
        except _Invalid as e:
            errors.append(FieldError(field=name, expected=e.expected, received=e.received))
    return values, errors


def validate(schema: Schema, raw_frontmatter: Mapping[str, Any]) -> BaseModel:
    """Apply schema to untyped front-matter. Raises ValidationFailed listing every bad field."""
    values, errors = check(schema, raw_frontmatter)
    if errors:
        raise ValidationFailed(errors)
    return schema.metadata_model(**values)
