"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from mdcollect.core.models import CompiledBody, Heading
from mdcollect.crud import models  # noqa: F401


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="body")
def body_fixture():
    """A compiled body with one heading."""
    return CompiledBody(
        html='<h1 id="hello">Hello</h1>\n',
        raw="# Hello\n",
        headings=(Heading(level=1, text="Hello", anchor="hello"),),
    )
