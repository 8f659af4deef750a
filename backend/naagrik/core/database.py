import uuid
from datetime import datetime, timezone
from functools import lru_cache
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from naagrik.core.config import settings

# Base class for all database models
Base = declarative_base()


@lru_cache(maxsize=None)
def get_engine() -> Engine:
    """
    Process-wide database engine, created on first use and reused afterwards.

    The engine owns the connection pool shared by every request.
    """
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        # SQLite connections are handed between worker threads by the pool
        connect_args = {"check_same_thread": False}
    return create_engine(settings.DATABASE_URL, connect_args=connect_args)


@lru_cache(maxsize=None)
def get_session_factory() -> sessionmaker:
    # autocommit=False: changes require explicit commit
    # autoflush=False: don't auto-flush before queries
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create tables for all models that inherit from Base"""
    # Model modules must be imported so their tables are registered on Base.metadata
    from naagrik.models import comment, issue, user  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes, even if the handler raised.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def new_id() -> str:
    """Opaque string primary key"""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Microsecond resolution keeps newest-first ordering stable
    return datetime.now(timezone.utc)
