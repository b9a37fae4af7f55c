"""Database configuration and session management."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from photoseek.settings import Settings


def get_engine_kwargs(settings: Settings) -> dict:
    """Return SQLAlchemy engine kwargs with safe defaults for long-running services."""
    kwargs = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
    }

    # QueuePool sizing only applies to non-sqlite engines.
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
        kwargs["pool_timeout"] = settings.db_pool_timeout

    if settings.database_url.startswith("postgresql"):
        kwargs["connect_args"] = {
            "connect_timeout": settings.db_connect_timeout,
        }

    return kwargs


def build_engine(settings: Settings) -> Engine:
    """Build a database engine using configured pool and connectivity options."""
    return create_engine(settings.database_url, **get_engine_kwargs(settings))


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory handed to the photo store."""
    return sessionmaker(bind=engine, expire_on_commit=False)
