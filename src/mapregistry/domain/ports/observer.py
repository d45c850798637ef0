"""Observer port notified after successful registry mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mapregistry.domain.model import KeyComponent, MappingKind, MappingRecord


@runtime_checkable
class MappingObserver(Protocol):
    def mapping_created(self, kind: MappingKind, record: MappingRecord) -> None: ...

    def mappings_deleted(self, kind: MappingKind, count: int, *, only_migrated: bool) -> None: ...

    def subject_merged(
        self,
        kind: MappingKind,
        old_subject_ref: str,
        new_subject_ref: str,
        count: int,
    ) -> None: ...

    def group_moved(
        self,
        kind: MappingKind,
        group_key: KeyComponent,
        new_subject_ref: str,
        records: Sequence[MappingRecord],
    ) -> None: ...


class NullMappingObserver:
    """Observer that ignores every event."""

    def mapping_created(self, kind: MappingKind, record: MappingRecord) -> None:
        _ = (kind, record)

    def mappings_deleted(self, kind: MappingKind, count: int, *, only_migrated: bool) -> None:
        _ = (kind, count, only_migrated)

    def subject_merged(
        self,
        kind: MappingKind,
        old_subject_ref: str,
        new_subject_ref: str,
        count: int,
    ) -> None:
        _ = (kind, old_subject_ref, new_subject_ref, count)

    def group_moved(
        self,
        kind: MappingKind,
        group_key: KeyComponent,
        new_subject_ref: str,
        records: Sequence[MappingRecord],
    ) -> None:
        _ = (kind, group_key, new_subject_ref, records)


if TYPE_CHECKING:
    _observer_check: MappingObserver = NullMappingObserver()
