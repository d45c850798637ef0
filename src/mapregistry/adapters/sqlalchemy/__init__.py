"""SQLAlchemy adapter package for the mapping registry."""

from __future__ import annotations

from .mappings import UTCDateTime, create_all_tables, mapper_registry, table_for
from .repositories import SqlAlchemyMappingStore
from .unit_of_work import (
    SqlAlchemyMappingUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyMappingStore",
    "SqlAlchemyMappingUnitOfWork",
    "StartupError",
    "UTCDateTime",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
    "table_for",
]
