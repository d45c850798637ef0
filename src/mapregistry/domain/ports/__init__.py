"""Domain port definitions for adapters."""

from __future__ import annotations

from .observer import MappingObserver, NullMappingObserver
from .persistence import MappingStore
from .unit_of_work import (
    MappingRepositories,
    MappingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "MappingObserver",
    "MappingRepositories",
    "MappingStore",
    "MappingUnitOfWork",
    "NullMappingObserver",
    "RepositoryCollection",
    "UnitOfWork",
]
