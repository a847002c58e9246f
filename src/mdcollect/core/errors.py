"""Pipeline exception hierarchy: per-document failures, build failures, misconfiguration"""

from pathlib import Path
from typing import Sequence


class PipelineError(Exception):
    """Base class for every error raised by the collection pipeline."""


class ConfigurationError(PipelineError):
    """Misconfigured pipeline (not bad content). Raised immediately, never collected."""


class UnknownKind(ConfigurationError, KeyError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown collection kind: {kind!r}")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateKind(ConfigurationError, ValueError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Collection kind already registered: {kind!r}")


class DocumentError(PipelineError):
    """A failure attributable to a single source document. Collected across the batch."""

    def __init__(self, path: Path | str | None, message: str):
        self.path = str(path) if path is not None else None
        self.message = message
        super().__init__(f"{self.path}: {message}" if self.path else message)


class MalformedDocument(DocumentError):
    """Front-matter delimiters missing/unbalanced, or front-matter is not a YAML mapping."""


class ValidationFailed(DocumentError):
    """One or more metadata fields violate the schema. Carries every FieldError found."""

    def __init__(self, errors: Sequence, path: Path | str | None = None):
        self.errors = list(errors)
        detail = "; ".join(
            f"{e.field}: expected {e.expected}, received {e.received}" for e in self.errors
        )
        super().__init__(path, f"validation failed ({detail})")

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def with_path(self, path: Path | str) -> "ValidationFailed":
        return ValidationFailed(self.errors, path)


class CompilationError(DocumentError):
    def __init__(self, message: str, line: int | None = None, snippet: str = "", path: Path | str | None = None):
        self.line = line
        self.snippet = snippet
        self.reason = message
        where = f" (line {line})" if line is not None else ""
        super().__init__(path, f"{message}{where}: {snippet!r}" if snippet else f"{message}{where}")

    def with_path(self, path: Path | str) -> "CompilationError":
        return CompilationError(self.reason, self.line, self.snippet, path)


class DateParseError(DocumentError):
    def __init__(self, field: str, value: str, path: Path | str | None = None):
        self.field = field
        self.value = value
        super().__init__(path, f"field {field!r} is not a parseable date: {value!r}")

    def with_path(self, path: Path | str) -> "DateParseError":
        return DateParseError(self.field, self.value, path)


class InvalidDates(DocumentError):
    """Every date-string field of one document that failed to parse."""

    def __init__(self, errors: Sequence[DateParseError], path: Path | str | None = None):
        self.errors = list(errors)
        super().__init__(path, "; ".join(e.message for e in self.errors))

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def with_path(self, path: Path | str) -> "InvalidDates":
        return InvalidDates([e.with_path(path) for e in self.errors], path)


class DuplicateSlug(DocumentError):
    """Two or more documents in one collection derive the same slug. Names every contributor."""

    def __init__(self, slug: str, paths: Sequence[str]):
        self.slug = slug
        self.paths = list(paths)
        super().__init__(None, f"duplicate slug {slug!r} shared by: {', '.join(self.paths)}")


class BuildCancelled(PipelineError):
    pass


class BuildFailed(PipelineError):
    """Raised only after every document was attempted; bundles the complete failure list."""

    def __init__(self, failures: Sequence[DocumentError], kind: str | None = None):
        self.failures = list(failures)
        self.kind = kind
        scope = f" for collection {kind!r}" if kind else ""
        super().__init__(f"Build failed{scope} with {len(self.failures)} error(s)")

    def report(self) -> list[str]:
        return [str(f) for f in self.failures]
