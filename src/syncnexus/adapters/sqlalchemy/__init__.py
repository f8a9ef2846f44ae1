"""SQLAlchemy adapter package."""

from __future__ import annotations

from .database import create_store_engine, shutdown, startup
from .mappings import create_all_tables, mapper_registry, start_mappers
from .store import SqlAlchemyCanonicalStore

__all__ = [
    "SqlAlchemyCanonicalStore",
    "create_all_tables",
    "create_store_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
