"""Unit tests for core/derive.py"""

from datetime import datetime, timedelta, timezone

import pytest

from mdcollect.core.derive import check_dates, coerce_dates, count_words, derive, derive_slug, parse_date, read_time
from mdcollect.core.errors import InvalidDates
from mdcollect.core.models import CompiledBody, FileIdentity
from mdcollect.core.schema import POSTS_SCHEMA, Schema


@pytest.mark.parametrize("file_name,expected", [
    ("hello.md", "hello"),
    ("Hello World.md", "hello-world"),
    ("My  Post.v2.md", "my--post.v2"),
    ("What's New?.md", "what's-new?"),
    ("README", "readme"),
])
def test_derive_slug(file_name, expected):
    """Slug is the extension-less filename with spaces dashed and lowercased, nothing else."""
    assert derive_slug(file_name) == expected


def test_count_words_skips_code_and_tags():
    """Fenced code and HTML-like tags are not counted."""
    raw = "one two <span class='x'>three</span>\n\n```python\nfour five six\n```\n"
    assert count_words(raw) == 3


def test_read_time_minimum_one():
    """Empty and very short bodies read in one minute."""
    assert read_time("") == "1 min read"
    assert read_time("word") == "1 min read"


@pytest.mark.parametrize("words,expected", [(300, "1 min read"), (301, "2 min read"), (600, "2 min read"), (601, "3 min read")])
def test_read_time_rounds_up(words, expected):
    assert read_time("word " * words) == expected


def test_read_time_custom_speed():
    assert read_time("word " * 100, words_per_minute=50) == "2 min read"


@pytest.mark.parametrize("value,expected", [
    ("2024-01-01", datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ("2024-01-01T10:30:00Z", datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)),
    ("2024/01/05", datetime(2024, 1, 5, tzinfo=timezone.utc)),
    ("January 5, 2024", datetime(2024, 1, 5, tzinfo=timezone.utc)),
    ("Jan 5, 2024", datetime(2024, 1, 5, tzinfo=timezone.utc)),
])
def test_parse_date_formats(value, expected):
    assert parse_date(value) == expected


def test_parse_date_keeps_offset():
    """An explicit UTC offset is preserved."""
    parsed = parse_date("2024-01-01T09:00:00+02:00")
    assert parsed.utcoffset() == timedelta(hours=2)


def test_parse_date_invalid():
    with pytest.raises(ValueError):
        parse_date("next tuesday")


def test_coerce_dates_error_names_field():
    """An unparseable date raises InvalidDates naming the field and value."""
    schema = Schema(kind="events", fields={"title": "string", "startsAt": "date_string"})
    meta = schema.metadata_model(title="x", startsAt="soon")
    with pytest.raises(InvalidDates) as exc:
        coerce_dates(schema, meta)
    (error,) = exc.value.errors
    assert error.field == "startsAt"
    assert error.value == "soon"


def test_coerce_dates_reports_every_bad_field():
    """Each unparseable date field is reported, not just the first."""
    schema = Schema(kind="events", fields={"a": "date_string", "b": "date_string"})
    with pytest.raises(InvalidDates) as exc:
        coerce_dates(schema, schema.metadata_model(a="someday", b="never"))
    assert exc.value.fields == ["a", "b"]
    assert [e.value for e in exc.value.errors] == ["someday", "never"]


def test_check_dates_keeps_good_fields():
    """check_dates returns the parsed dates alongside the failures without raising."""
    schema = Schema(kind="events", fields={"a": "date_string", "b": "date_string"})
    dates, errors = check_dates(schema, {"a": "2024-01-01", "b": "never"})
    assert dates == {"a": datetime(2024, 1, 1, tzinfo=timezone.utc)}
    assert [e.field for e in errors] == ["b"]


def test_coerce_dates_skips_missing_optional():
    """A missing optional date is left out."""
    schema = Schema(kind="events", fields={"endsAt": {"type": "date_string", "required": False}})
    assert coerce_dates(schema, schema.metadata_model(endsAt=None)) == {}


def test_derive_combines_fields():
    """derive computes slug, read time and dates for one document."""
    meta = POSTS_SCHEMA.metadata_model(
        title="t", publishDate="2024-01-01", description="d", category="c",
        tags=(), thumbnail="x", author="a",
    )
    derived = derive(
        FileIdentity(path="content/posts/Hello World.md", file_name="Hello World.md", stem="Hello World"),
        meta,
        CompiledBody(html="", raw="word " * 450),
        POSTS_SCHEMA,
    )
    assert derived.slug == "hello-world"
    assert derived.read_time == "2 min read"
    assert derived.dates == {"publishDate": datetime(2024, 1, 1, tzinfo=timezone.utc)}
