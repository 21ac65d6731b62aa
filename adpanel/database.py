"""
Database engine, session factory and declarative base.
"""
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

settings = get_settings()


def _engine_options(url) -> dict:
    url = make_url(url)
    if url.get_backend_name() != "sqlite":
        return {"pool_size": settings.db_pool_size, "pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live as long as their connection, so share one
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(settings.sqlalchemy_url, **_engine_options(settings.sqlalchemy_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """Yield a session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
