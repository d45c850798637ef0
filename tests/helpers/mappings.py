"""Reusable fakes and builders for mapping-registry tests."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from mapregistry.domain.model import (
    InsertOutcome,
    MappingProvenance,
    MappingRecord,
    PageOrder,
)
from mapregistry.domain.model.kinds import CSRAS

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from mapregistry.domain.model import KeyComponent, MappingKind, SecondaryKey

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_csra(
    booking: int = 1,
    sequence: int = 1,
    *,
    dps_id: str | None = None,
    offender_no: str | None = "A1234BC",
    label: str | None = None,
    provenance: MappingProvenance = MappingProvenance.TARGET_CREATED,
    created_at: datetime | None = None,
) -> MappingRecord:
    return MappingRecord(
        primary_key=dps_id or f"dps-{booking}-{sequence}",
        secondary_key=(booking, sequence),
        provenance=provenance,
        subject_ref=offender_no,
        label=label,
        created_at=created_at,
    )


def make_incident(
    nomis_id: int,
    dps_id: str | None = None,
    *,
    label: str | None = None,
    provenance: MappingProvenance = MappingProvenance.TARGET_CREATED,
) -> MappingRecord:
    return MappingRecord(
        primary_key=dps_id or f"dps-{nomis_id}",
        secondary_key=(nomis_id,),
        provenance=provenance,
        label=label,
    )


def ticking_clock(start: datetime = BASE_TIME) -> Callable[[], datetime]:
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


class InMemoryMappingStore:
    """Dict-backed store enforcing uniqueness of both keys, like the real tables."""

    def __init__(
        self,
        kind: MappingKind,
        initial: Iterable[MappingRecord] = (),
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._kind = kind
        self._clock = clock or ticking_clock()
        self.rows: dict[KeyComponent, MappingRecord] = {}
        for record in initial:
            self.insert(record)

    @property
    def kind(self) -> MappingKind:
        return self._kind

    def get_by_primary(self, key: KeyComponent) -> MappingRecord | None:
        return self.rows.get(key)

    def get_by_secondary(self, key: SecondaryKey) -> MappingRecord | None:
        return next((row for row in self.rows.values() if row.secondary_key == key), None)

    def insert(self, record: MappingRecord) -> InsertOutcome:
        if self.get_by_secondary(record.secondary_key) is not None:
            return InsertOutcome.SECONDARY_KEY_COLLISION
        if record.primary_key in self.rows:
            return InsertOutcome.PRIMARY_KEY_COLLISION
        self.rows[record.primary_key] = record.with_created_at(
            record.created_at or self._clock()
        )
        return InsertOutcome.INSERTED

    def delete_by_primary(self, key: KeyComponent) -> int:
        return 1 if self.rows.pop(key, None) is not None else 0

    def delete_by_secondary(self, key: SecondaryKey) -> int:
        existing = self.get_by_secondary(key)
        if existing is None:
            return 0
        del self.rows[existing.primary_key]
        return 1

    def delete_all(self, *, only_migrated: bool = False) -> int:
        doomed = [key for key, row in self.rows.items() if row.is_migrated or not only_migrated]
        for key in doomed:
            del self.rows[key]
        return len(doomed)

    def _matching(
        self,
        label: str | None,
        provenance: MappingProvenance | None,
    ) -> Iterator[MappingRecord]:
        for row in self.rows.values():
            if label is not None and row.label != label:
                continue
            if provenance is not None and row.provenance is not provenance:
                continue
            yield row

    def count_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int:
        return sum(1 for _ in self._matching(label, provenance))

    def scan_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MappingRecord]:
        rows = sorted(self._matching(label, provenance), key=lambda row: row.primary_key)
        if self._kind.page_order is PageOrder.LABEL_DESC:
            rows.sort(key=lambda row: row.label or "", reverse=True)
        end = None if limit is None else offset + limit
        return rows[offset:end]

    def count_distinct_subjects(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int:
        subjects = {row.subject_ref for row in self._matching(label, provenance)}
        return len(subjects - {None})

    def latest(self, *, provenance: MappingProvenance) -> MappingRecord | None:
        rows = [row for row in self.rows.values() if row.provenance is provenance]
        return max(rows, key=lambda row: row.created_at or BASE_TIME, default=None)

    def scan_by_subject(self, subject_ref: str) -> list[MappingRecord]:
        rows = [row for row in self.rows.values() if row.subject_ref == subject_ref]
        return sorted(rows, key=lambda row: row.secondary_key)

    def update_subject_ref(
        self,
        old_subject_ref: str,
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        return self._rewrite(lambda row: row.subject_ref == old_subject_ref, new_subject_ref)

    def update_subject_ref_for_group(
        self,
        group_key: KeyComponent,
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        return self._rewrite(lambda row: self._kind.group_of(row) == group_key, new_subject_ref)

    def _rewrite(
        self,
        predicate: Callable[[MappingRecord], bool],
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        updated: list[MappingRecord] = []
        for key, row in list(self.rows.items()):
            if predicate(row):
                self.rows[key] = row.with_subject(new_subject_ref)
                updated.append(self.rows[key])
        return sorted(updated, key=lambda row: row.secondary_key)


@dataclass(slots=True)
class FakeMappingRepositories:
    mappings: InMemoryMappingStore


class FakeMappingUnitOfWork:
    """Unit of work over an in-memory store; uncommitted changes are discarded on exit."""

    def __init__(self, store: InMemoryMappingStore) -> None:
        self.repositories = FakeMappingRepositories(mappings=store)
        self._snapshot: dict[KeyComponent, MappingRecord] = {}
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self) -> FakeMappingUnitOfWork:
        self._snapshot = dict(self.repositories.mappings.rows)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        self.rollback()
        return False

    def commit(self) -> None:
        self.commits += 1
        self._snapshot = dict(self.repositories.mappings.rows)

    def rollback(self) -> None:
        if self.repositories.mappings.rows != self._snapshot:
            self.rollbacks += 1
        self.repositories.mappings.rows = dict(self._snapshot)


@dataclass
class FakeUnitOfWorkFactory:
    store: InMemoryMappingStore
    created: list[FakeMappingUnitOfWork] = field(default_factory=list[FakeMappingUnitOfWork])

    def __call__(self) -> FakeMappingUnitOfWork:
        uow = FakeMappingUnitOfWork(self.store)
        self.created.append(uow)
        return uow

    @property
    def commits(self) -> int:
        return sum(uow.commits for uow in self.created)


def in_memory_factory(
    kind: MappingKind = CSRAS,
    initial: Iterable[MappingRecord] = (),
) -> FakeUnitOfWorkFactory:
    return FakeUnitOfWorkFactory(InMemoryMappingStore(kind, initial))


@dataclass
class RecordingObserver:
    events: list[tuple[str, dict[str, object]]] = field(
        default_factory=list[tuple[str, dict[str, object]]]
    )

    def mapping_created(self, kind: MappingKind, record: MappingRecord) -> None:
        self.events.append(("created", {"kind": kind.name, "record": record}))

    def mappings_deleted(self, kind: MappingKind, count: int, *, only_migrated: bool) -> None:
        self.events.append(
            ("deleted", {"kind": kind.name, "count": count, "only_migrated": only_migrated})
        )

    def subject_merged(
        self,
        kind: MappingKind,
        old_subject_ref: str,
        new_subject_ref: str,
        count: int,
    ) -> None:
        self.events.append(
            (
                "merged",
                {"kind": kind.name, "old": old_subject_ref, "new": new_subject_ref, "count": count},
            )
        )

    def group_moved(
        self,
        kind: MappingKind,
        group_key: KeyComponent,
        new_subject_ref: str,
        records: Sequence[MappingRecord],
    ) -> None:
        self.events.append(
            (
                "moved",
                {
                    "kind": kind.name,
                    "group": group_key,
                    "new": new_subject_ref,
                    "records": list(records),
                },
            )
        )

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class ExplodingObserver(RecordingObserver):
    def mapping_created(self, kind: MappingKind, record: MappingRecord) -> None:
        raise RuntimeError("observer down")

    def subject_merged(
        self,
        kind: MappingKind,
        old_subject_ref: str,
        new_subject_ref: str,
        count: int,
    ) -> None:
        raise RuntimeError("observer down")


if TYPE_CHECKING:
    from mapregistry.domain.ports import MappingObserver, MappingStore

    _check_store: MappingStore = InMemoryMappingStore(CSRAS)
    _check_observer: MappingObserver = RecordingObserver()
