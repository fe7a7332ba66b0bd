"""Database configuration and session management."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pinboard.settings import settings

logger = logging.getLogger(__name__)


def get_engine_kwargs(database_url: str = None) -> dict:
    """Return SQLAlchemy engine kwargs for the configured backend."""
    url = database_url or settings.database_url
    kwargs = {
        "pool_pre_ping": settings.db_pool_pre_ping,
    }

    if url.startswith("sqlite"):
        # Request handlers and sync dependencies run on different threads.
        kwargs["connect_args"] = {"check_same_thread": False}
        return kwargs

    kwargs["pool_size"] = settings.db_pool_size
    kwargs["max_overflow"] = settings.db_max_overflow
    kwargs["pool_timeout"] = settings.db_pool_timeout
    kwargs["pool_recycle"] = settings.db_pool_recycle

    if url.startswith("postgresql"):
        kwargs["connect_args"] = {"connect_timeout": settings.db_connect_timeout}

    return kwargs


def build_engine(database_url: str = None):
    """Build a database engine using configured pool and connectivity options."""
    url = database_url or settings.database_url
    return create_engine(url, **get_engine_kwargs(url))


# Create database engine
engine = build_engine()

# Create session factory
SessionLocal = sessionmaker(bind=engine)


def get_db():
    """Get database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    # Both model modules must be imported so their tables register on Base.
    from pinboard.auth import models as _auth_models  # noqa: F401
    from pinboard.metadata import Base

    target = bind if bind is not None else engine
    Base.metadata.create_all(target)
    logger.info("Database tables ensured on %s", target.url.render_as_string(hide_password=True))
