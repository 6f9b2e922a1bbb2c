"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Only the snapshot recorder touches the database; the analyzers keep
their working data in memory.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from phonestats.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def create_db_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL (configured URL if None).

    SQLite engines get WAL journaling so API reads don't block the
    recorder's writes.
    """
    url = url or config.database.url
    engine_kwargs = {'echo': echo}

    is_sqlite = url.startswith('sqlite')
    if is_sqlite:
        # Recorder thread and request threads share the engine
        engine_kwargs['connect_args'] = {'check_same_thread': False}

    db_engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(db_engine, 'connect')
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA journal_mode=WAL')
            cursor.execute('PRAGMA synchronous=NORMAL')
            cursor.close()

    return db_engine


def make_session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Avoid lazy loading issues
    )


engine = create_db_engine(echo=config.debug)

# Session factory
SessionLocal = make_session_factory(engine)


@contextmanager
def get_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.execute(...)

    Automatically handles commit/rollback and session cleanup.
    """
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(db_engine: Optional[Engine] = None) -> None:
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=db_engine or engine)
