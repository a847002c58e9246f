"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from mdcollect.core.compile import DEFAULT_EXTENSIONS
from mdcollect.core.parse import DEFAULT_INCLUDE
from mdcollect.core.schema import FieldSpec, Schema, SchemaRegistry, default_schemas


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "MDCOLLECT_"

# Structured fields that are only read from config.yaml.
_NO_ENV = {"collections"}

DEFAULT_DIRECTORIES = {"posts": "content/posts", "projects": "content/projects"}


class CollectionConfig(BaseModel):
    """Where one kind's documents live and, optionally, its field declarations."""
    model_config = ConfigDict(populate_by_name=True)

    directory: str
    include:   str = DEFAULT_INCLUDE
    schema_:   dict[str, Any] | None = Field(default=None, alias="schema",
                                             description="field -> type name or {type, required, default}")


class Settings(BaseModel):
    app_name:         str = "mdcollect"
    db_url:           str = "sqlite:///mdcollect.db"
    cache:            bool = Field(default=True, description="Reuse compiled bodies across builds")
    output_dir:       str = Field(default="dist",     description="Directory for exported <kind>.json files")
    content_root:     str = Field(default=".",        description="Base directory for collection directories")
    concurrency:      int = Field(default=0,  ge=0,   description="Worker threads per build; 0 = CPU count")
    words_per_minute: int = Field(default=300, ge=1,  description="Reading speed used for readTime")
    parser_config:    str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    extensions:       tuple[str, ...] = Field(default=DEFAULT_EXTENSIONS, description="Allowed embedded block names")
    log_level:        str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
                                  description="Root logging level")
    collections:      dict[str, CollectionConfig] = Field(default_factory=dict)

    @field_validator("extensions", mode="before")
    @classmethod
    def _split_extensions(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(name.strip() for name in v.split(",") if name.strip())
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def collection_configs(self) -> dict[str, CollectionConfig]:
        """Configured collections, or the built-in posts/projects layout when none are declared."""
        if self.collections:
            return dict(self.collections)
        return {kind: CollectionConfig(directory=d) for kind, d in DEFAULT_DIRECTORIES.items()}

    def schema_registry(self) -> SchemaRegistry:
        """Build the SchemaRegistry for every configured kind. Raises ValueError on a bad declaration."""
        builtin = {s.kind: s for s in default_schemas()}
        registry = SchemaRegistry()
        for kind, cfg in self.collection_configs().items():
            if cfg.schema_ is not None:
                registry.register(Schema(
                    kind=kind, fields={k: FieldSpec.parse(v) for k, v in cfg.schema_.items()},
                ))
            elif kind in builtin:
                registry.register(builtin[kind])
            else:
                raise ValueError(f"Collection {kind!r} declares no schema")
        return registry

    def directory_for(self, kind: str) -> Path:
        return Path(self.content_root) / self.collection_configs()[kind].directory


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDCOLLECT_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: top level must be a mapping")

    for name in Settings.model_fields:
        if name in _NO_ENV:
            continue
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
