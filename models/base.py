"""
Database configuration and base model.

Uses SQLAlchemy 2.0 declarative style with SQLite.
"""

from pathlib import Path
from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import PATHS


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return PATHS.database


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def create_db_engine(database: Path) -> Engine:
    """Engine for a SQLite database file. The file is only opened on first use."""
    return create_engine(
        f"sqlite:///{database}",
        echo=False,
        connect_args={"check_same_thread": False},  # Allow multi-threaded access
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False)


# Default database in the user data directory
engine = create_db_engine(get_database_path())
SessionLocal = create_session_factory(engine)


@contextmanager
def get_session(
    session_factory: Callable[[], Session] = SessionLocal,
) -> Generator[Session, None, None]:
    """Context manager for database sessions. Commits on success, rolls back on error."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine = engine) -> None:
    """Initialize a database, creating its directory and all tables."""
    database = bind.url.database
    if database:
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)
