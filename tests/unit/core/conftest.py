"""Shared fixtures for core unit tests"""

from pathlib import Path

import pytest

from mdcollect.core.compile import BodyCompiler
from mdcollect.core.models import FileIdentity, SourceDocument


POST_FRONTMATTER = """\
title: Hello World
publishDate: 2024-01-01
description: A first post
category: notes
tags: [intro, meta]
thumbnail: /img/hello.png
author: Ada
"""

POST_BODY = """\
# Hello

Some words here.

## Details

More words.
"""


@pytest.fixture(name="compiler")
def compiler_fixture():
    return BodyCompiler()


@pytest.fixture(name="make_doc")
def make_doc_fixture():
    """Factory: SourceDocument from a path, raw front-matter and body."""
    def _make(path: str = "content/posts/Hello World.md", frontmatter: str = POST_FRONTMATTER, body: str = POST_BODY):
        return SourceDocument(
            file=FileIdentity.from_path(Path(path)),
            raw_frontmatter=frontmatter,
            body=body,
        )
    return _make
