"""Engine construction and schema creation for the compile cache database"""

from sqlmodel import SQLModel, create_engine

# Registers the tables on SQLModel.metadata.
from mdcollect.crud import models  # noqa: F401


def make_engine(db_url: str):
    """Engine for Settings.db_url."""
    return create_engine(db_url, echo=False)


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)


def reset_db(engine) -> None:
    """Drop and recreate every table."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
