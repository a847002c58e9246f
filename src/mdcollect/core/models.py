"""Data models shared across the load, validate, compile, derive and assemble steps"""

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny


class FileIdentity(BaseModel):
    """Where a document came from on disk."""
    model_config = ConfigDict(frozen=True)

    path:      str
    file_name: str              # e.g. "Hello World.md"
    stem:      str              # file_name without its final extension

    @classmethod
    def from_path(cls, path: Path) -> "FileIdentity":
        return cls(path=str(path), file_name=path.name, stem=path.stem)


class SourceDocument(BaseModel):
    """A document split into raw front-matter text and raw body text. Never mutated."""
    model_config = ConfigDict(frozen=True)

    file:            FileIdentity
    raw_frontmatter: str
    body:            str
    body_offset:     int = 0      # lines in the file before the body starts


class FieldError(BaseModel):
    """One schema violation: which field, what the schema wanted, what was found."""
    model_config = ConfigDict(frozen=True)

    field:    str
    expected: str
    received: str


class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)

    level:  int
    text:   str
    anchor: str


class CompiledBody(BaseModel):
    """Rendered HTML plus the raw body it was compiled from."""
    model_config = ConfigDict(frozen=True)

    html:     str
    raw:      str
    headings: tuple[Heading, ...] = ()


class DerivedFields(BaseModel):
    """Fields computed by the pipeline rather than authored in front-matter."""
    model_config = ConfigDict(frozen=True)

    slug:      str
    read_time: str
    dates:     dict[str, datetime] = Field(default_factory=dict)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


class CollectionRecord(BaseModel):
    """Base for the per-kind record models built by Schema.record_model().

    Subclasses add one attribute per schema field; date fields hold the
    coerced datetime while `metadata` keeps the authored strings.
    """
    model_config = ConfigDict(frozen=True, alias_generator=_camel, populate_by_name=True)

    kind:      str
    slug:      str
    read_time: str
    file:      FileIdentity
    body:      CompiledBody
    metadata:  SerializeAsAny[BaseModel]

    @property
    def html(self) -> str:
        return self.body.html

    def to_json_dict(self) -> dict[str, Any]:
        """Flat JSON-ready dict: schema fields, derived fields, path, html and headings."""
        data = self.model_dump(mode="json", by_alias=True, exclude={"file", "body", "metadata"})
        data["path"] = self.file.path
        data["html"] = self.body.html
        data["headings"] = [h.model_dump() for h in self.body.headings]
        return data
