"""Public domain model surface."""

from __future__ import annotations

from mapregistry.domain.model.enums import (
    CreateOutcome,
    DuplicateClassification,
    InsertOutcome,
    MappingProvenance,
    PageOrder,
)
from mapregistry.domain.model.kinds import (
    KINDS,
    KeyColumn,
    KeyComponent,
    MappingKind,
    SecondaryKey,
    get_kind,
)
from mapregistry.domain.model.mapping import MAX_LABEL_LENGTH, MappingRecord
from mapregistry.domain.model.paging import Page, PageRequest

__all__ = [
    "KINDS",
    "MAX_LABEL_LENGTH",
    "CreateOutcome",
    "DuplicateClassification",
    "InsertOutcome",
    "KeyColumn",
    "KeyComponent",
    "MappingKind",
    "MappingProvenance",
    "MappingRecord",
    "Page",
    "PageOrder",
    "PageRequest",
    "SecondaryKey",
    "get_kind",
]
