# src/srm_collab/db/__init__.py
"""Database configuration and utilities."""

from .session import Base, create_tables, drop_tables, engine

__all__ = ["Base", "create_tables", "drop_tables", "engine"]
