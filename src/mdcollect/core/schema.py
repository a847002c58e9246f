"""Per-kind metadata schemas and the registry that holds them"""

from datetime import datetime
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model, model_validator

from mdcollect.core.errors import DuplicateKind, UnknownKind
from mdcollect.core.models import CollectionRecord


class FieldType(str, Enum):
    """Closed set of semantic field types a schema may declare"""
    string = "string"
    string_array = "string_array"
    number = "number"
    optional_string = "optional_string"
    date_string = "date_string"


# Python types for the validated metadata model, and for the record model
# where date strings have already been coerced.
_METADATA_TYPES: dict[FieldType, Any] = {
    FieldType.string:          str,
    FieldType.string_array:    tuple[str, ...],
    FieldType.number:          int | float,
    FieldType.optional_string: Optional[str],
    FieldType.date_string:     str,
}
_RECORD_TYPES: dict[FieldType, Any] = {**_METADATA_TYPES, FieldType.date_string: datetime}


def _python_type(spec: "FieldSpec", table: dict[FieldType, Any]) -> Any:
    t = table[spec.type]
    return t if spec.required else Optional[t]


RESERVED_NAMES = frozenset(CollectionRecord.model_fields) | {"html", "readTime"}


class FieldSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:     FieldType
    required: bool = True
    default:  Any = None

    @model_validator(mode="after")
    def _optional_never_required(self) -> "FieldSpec":
        if self.type == FieldType.optional_string and self.required:
            object.__setattr__(self, "required", False)
        return self

    @classmethod
    def parse(cls, value: Any) -> "FieldSpec":
        """Accept a FieldSpec, a bare type name ('string') or a {type, required, default} dict."""
        if isinstance(value, FieldSpec):
            return value
        if isinstance(value, (str, FieldType)):
            return cls(type=value)
        return cls.model_validate(value)


class Schema(BaseModel):
    """Immutable declaration of the metadata fields one document kind carries."""
    model_config = ConfigDict(frozen=True, ignored_types=(cached_property,))

    kind:   str = Field(..., min_length=1)
    fields: Mapping[str, FieldSpec]

    @model_validator(mode="before")
    @classmethod
    def _coerce_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("fields"), Mapping):
            data = {**data, "fields": {k: FieldSpec.parse(v) for k, v in data["fields"].items()}}
        return data

    @model_validator(mode="after")
    def _check_names(self) -> "Schema":
        for name in self.fields:
            if (not name.isidentifier() or name.startswith(("_", "model_"))
                    or name in RESERVED_NAMES or hasattr(CollectionRecord, name)):
                raise ValueError(f"Schema {self.kind!r}: field name {name!r} is not allowed")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        return self

    def date_fields(self) -> list[str]:
        return [name for name, spec in self.fields.items() if spec.type == FieldType.date_string]

    @cached_property
    def metadata_model(self) -> type[BaseModel]:
        """Frozen pydantic model holding validated (not yet date-coerced) metadata."""
        return create_model(
            f"{_class_name(self.kind)}Metadata",
            __config__=ConfigDict(frozen=True),
            **{name: (_python_type(spec, _METADATA_TYPES), ...) for name, spec in self.fields.items()},
        )

    @cached_property
    def record_model(self) -> type[CollectionRecord]:
        """Frozen per-kind record model: schema fields (dates coerced) + derived fields."""
        return create_model(
            f"{_class_name(self.kind)}Record",
            __base__=CollectionRecord,
            **{name: (_python_type(spec, _RECORD_TYPES), ...) for name, spec in self.fields.items()},
        )


def _class_name(kind: str) -> str:
    return "".join(p.title() for p in kind.replace("-", "_").split("_") if p) or "Document"


class SchemaRegistry:
    """Kind -> Schema mapping. Populated before any load; entries are never replaced."""

    def __init__(self, schemas: list[Schema] | None = None):
        self._schemas: dict[str, Schema] = {}
        for schema in schemas or []:
            self.register(schema)

    def register(self, kind: str | Schema, fields: Mapping[str, Any] | None = None) -> Schema:
        """Register a Schema, or build one from (kind, fields). Raises DuplicateKind on re-registration."""
        schema = kind if isinstance(kind, Schema) else Schema(kind=kind, fields=fields or {})
        if schema.kind in self._schemas:
            raise DuplicateKind(schema.kind)
        self._schemas[schema.kind] = schema
        return schema

    def get(self, kind: str) -> Schema:
        try:
            return self._schemas[kind]
        except KeyError:
            raise UnknownKind(kind) from None

    def kinds(self) -> list[str]:
        return list(self._schemas)

    def __contains__(self, kind: object) -> bool:
        return kind in self._schemas

    def __iter__(self) -> Iterator[Schema]:
        return iter(list(self._schemas.values()))

    def __len__(self) -> int:
        return len(self._schemas)


POSTS_SCHEMA = Schema(kind="posts", fields={
    "title":       "string",
    "publishDate": "date_string",
    "description": "string",
    "category":    "string",
    "tags":        "string_array",
    "thumbnail":   "string",
    "author":      "string",
})

PROJECTS_SCHEMA = Schema(kind="projects", fields={
    "name":        "string",
    "year":        "number",
    "studyCase":   "string",
    "description": "string",
    "techStack":   "string_array",
    "thumbnail":   "string",
    "linkLive":    "optional_string",
    "linkGithub":  "optional_string",
})


def default_schemas() -> list[Schema]:
    return [POSTS_SCHEMA, PROJECTS_SCHEMA]
