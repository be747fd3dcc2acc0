"""Database engine configuration for the local backend."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

from srm_collab.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import srm_collab.models  # noqa: E402,F401

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)


def create_tables(bind: Engine | None = None) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind or engine)
