"""
Database engine and session management for ModelHub.

Every request works on its own ``Session`` from ``SessionLocal``; services are
constructed per request around that session.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from modelhub.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 30}
    return {}


engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def make_engine(url: str):
    """Create an engine with the same connection settings as the global one."""
    return create_engine(url, connect_args=_connect_args(url))


def init_db(bind=None) -> None:
    # Register tables on Base.metadata before creating them
    from modelhub.models import orm  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
