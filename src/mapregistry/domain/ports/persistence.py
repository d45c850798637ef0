"""Ports for persisting mapping records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mapregistry.domain.model import (
        InsertOutcome,
        KeyComponent,
        MappingKind,
        MappingProvenance,
        MappingRecord,
        SecondaryKey,
    )


@runtime_checkable
class MappingStore(Protocol):
    """Narrow persistence contract shared by every entity kind.

    Uniqueness of both keys is enforced by the store itself: ``insert`` reports a
    collision instead of raising, and callers never pre-check before inserting.
    Lookups return ``None`` when nothing matches.
    """

    @property
    def kind(self) -> MappingKind: ...

    def get_by_primary(self, key: KeyComponent) -> MappingRecord | None: ...

    def get_by_secondary(self, key: SecondaryKey) -> MappingRecord | None: ...

    def insert(self, record: MappingRecord) -> InsertOutcome: ...

    def delete_by_primary(self, key: KeyComponent) -> int: ...

    def delete_by_secondary(self, key: SecondaryKey) -> int: ...

    def delete_all(self, *, only_migrated: bool = False) -> int: ...

    def count_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int: ...

    def scan_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MappingRecord]: ...

    def count_distinct_subjects(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int: ...

    def latest(self, *, provenance: MappingProvenance) -> MappingRecord | None: ...

    def scan_by_subject(self, subject_ref: str) -> list[MappingRecord]: ...

    def update_subject_ref(
        self,
        old_subject_ref: str,
        new_subject_ref: str,
    ) -> list[MappingRecord]: ...

    def update_subject_ref_for_group(
        self,
        group_key: KeyComponent,
        new_subject_ref: str,
    ) -> list[MappingRecord]: ...
