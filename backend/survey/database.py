"""
IRVE Survey - Database Configuration
SQLite (WAL) by default, any SQLAlchemy URL via DATABASE_URL
"""
from pathlib import Path

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import get_settings

# Base class for ORM models
Base = declarative_base()


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine; SQLite connections are shared across worker threads."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=False, **kwargs)

    connect_args = kwargs.pop("connect_args", {})
    connect_args.setdefault("check_same_thread", False)
    engine = create_engine(database_url, echo=False, connect_args=connect_args, **kwargs)

    file_backed = url.database not in (None, "", ":memory:")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # WAL lets readers proceed while a request handler writes
        if file_backed:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Create engine
engine = build_engine(get_settings().database_url)

# Session factory
SessionLocal = build_session_factory(engine)


def get_db(request: Request):
    """Dependency for FastAPI - yields a session from the app's session factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """Initialize database - create all tables."""
    bind = bind or engine
    url = bind.url
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    # Register models on Base.metadata before create_all
    from .models import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind)
