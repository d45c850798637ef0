"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class MappingProvenance(StrEnum):
    """Which system or process originated a mapping."""

    MIGRATED = "MIGRATED"
    SOURCE_CREATED = "SOURCE_CREATED"
    TARGET_CREATED = "TARGET_CREATED"


class PageOrder(StrEnum):
    LABEL_DESC = "label_desc"
    PRIMARY_ASC = "primary_asc"


class DuplicateClassification(StrEnum):
    """Verdict for a proposed record measured against an existing one."""

    OK = "ok"
    BENIGN = "benign"
    CONFLICT = "conflict"


class InsertOutcome(StrEnum):
    INSERTED = "inserted"
    PRIMARY_KEY_COLLISION = "primary_key_collision"
    SECONDARY_KEY_COLLISION = "secondary_key_collision"


class CreateOutcome(StrEnum):
    CREATED = "created"
    NO_OP = "no_op"
