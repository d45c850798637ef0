"""The mapping record: one correspondence between a legacy and a replacement identifier."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final

from mapregistry.domain.errors import MappingValidationError
from mapregistry.domain.model.enums import MappingProvenance

if TYPE_CHECKING:
    from datetime import datetime

    from mapregistry.domain.model.kinds import KeyComponent, SecondaryKey

MAX_LABEL_LENGTH: Final[int] = 20


@dataclass(frozen=True, slots=True)
class MappingRecord:
    """A two-way-keyed mapping row.

    ``created_at`` is assigned by the store and is excluded from equality, so a
    record read back from storage compares equal to the one that was submitted.
    ``group_ref`` is only used by kinds whose group column is not part of the key.
    """

    primary_key: KeyComponent
    secondary_key: SecondaryKey
    provenance: MappingProvenance = MappingProvenance.TARGET_CREATED
    subject_ref: str | None = None
    label: str | None = None
    group_ref: KeyComponent | None = None
    created_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.secondary_key:
            raise MappingValidationError("secondary key must have at least one component")
        if self.label is not None and len(self.label) > MAX_LABEL_LENGTH:
            raise MappingValidationError(
                f"label must be at most {MAX_LABEL_LENGTH} characters, got {len(self.label)}"
            )
        if not isinstance(self.provenance, MappingProvenance):
            try:
                object.__setattr__(self, "provenance", MappingProvenance(self.provenance))
            except ValueError as exc:
                raise MappingValidationError(
                    f"unknown mapping type {self.provenance!r}"
                ) from exc

    @property
    def is_migrated(self) -> bool:
        return self.provenance is MappingProvenance.MIGRATED

    def with_subject(self, subject_ref: str | None) -> MappingRecord:
        return replace(self, subject_ref=subject_ref)

    def with_created_at(self, created_at: datetime | None) -> MappingRecord:
        return replace(self, created_at=created_at)

    def as_dict(self) -> dict[str, object]:
        return {
            "primaryKey": self.primary_key,
            "secondaryKey": list(self.secondary_key),
            "subjectRef": self.subject_ref,
            "label": self.label,
            "groupRef": self.group_ref,
            "mappingType": self.provenance.value,
            "whenCreated": self.created_at.isoformat() if self.created_at else None,
        }

    def shares_key_with(self, other: MappingRecord) -> bool:
        return self.primary_key == other.primary_key or self.secondary_key == other.secondary_key
