# =============================================================================
# File: intake/db.py
# Purpose: SQLAlchemy engine + session factory for the optional SQL record backend.
# =============================================================================
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for ORM models."""
    pass


def init_db(database_url: str) -> sessionmaker:
    """Create the engine, create missing tables and return a session factory."""
    # Import models so metadata sees them before create_all
    from . import models  # noqa: F401

    engine = create_engine(database_url, echo=False, future=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
